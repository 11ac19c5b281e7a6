"""
Utility modules for the FRMS compliance engine
"""
from .logger import logger, get_engine_logger, EngineLogger

__all__ = ['logger', 'get_engine_logger', 'EngineLogger']
