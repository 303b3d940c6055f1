"""
Base Logger Factory - Generische Logger-Erstellung
Wird von allen Modulen des Wrappers verwendet (database, cli).
Funktioniert auch ohne DB-Verbindung.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from ..config.settings import LOG_DIR

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
DATE_FORMAT = '%d.%m.%Y %H:%M:%S'


def create_module_logger(
    module_name: str,
    log_subdir: str,
    console_level: int = logging.ERROR,
    file_level: int = logging.INFO,
    file_name: str = None,
    log_dir: Optional[str] = LOG_DIR,
) -> logging.Logger:
    """
    Generische Logger Factory

    Args:
        module_name: Name des Loggers (z.B. 'SQLSERVER_DB')
        log_subdir: Unterverzeichnis in logs/ (z.B. 'database')
        console_level: Log Level für Console (default: ERROR)
        file_level: Log Level für File (default: INFO)
        file_name: Optional - Name der Log-Datei (default: {log_subdir}.log)
        log_dir: Basisverzeichnis für Log-Dateien; leer = kein File Handler

    Returns:
        Konfigurierter Logger mit Console + optionalem File Handler
    """
    logger = logging.getLogger(module_name)
    logger.setLevel(logging.DEBUG)  # Niedrigster Level, Handler filtern dann

    # Verhindere doppelte Handler
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # 1. Console Handler (stderr, default nur ERROR+)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # 2. File Handler ({log_dir}/{log_subdir}/{file_name})
    if log_dir:
        target_dir = Path(log_dir) / log_subdir
        target_dir.mkdir(parents=True, exist_ok=True)

        log_file = file_name or f"{log_subdir}.log"
        file_handler = logging.FileHandler(target_dir / log_file, encoding='utf-8')
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
