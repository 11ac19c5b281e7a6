"""
Regulatory rule books for the FRMS compliance engine
"""
from .limit_tables import load_limit_table, default_limit_table, DEFAULT_LIMIT_TABLE_FILE

__all__ = ['load_limit_table', 'default_limit_table', 'DEFAULT_LIMIT_TABLE_FILE']
