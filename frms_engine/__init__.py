"""
FRMS compliance engine: rolling flight/duty limits, next-duty projection and
home-base turnaround checks for airline pilots.
"""
__version__ = "0.1.0"
