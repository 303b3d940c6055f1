"""Logging Package - Zentrale Logger-Verwaltung"""

import logging

from .logger import create_module_logger
from ..config.settings import LOG_LEVEL

# DB Logger: INFO+ → logs/database/database.log, ERROR+ → Console
db_logger = create_module_logger('SQLSERVER_DB', 'database',
                                 console_level=logging.ERROR,
                                 file_level=getattr(logging, LOG_LEVEL, logging.INFO))

__all__ = ['create_module_logger', 'db_logger']
