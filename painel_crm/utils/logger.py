"""
Logging centralizado do painel CRM.
Console (stdout) + arquivo diário opcional, formato consistente em todos os módulos.

Uso:
    from painel_crm.utils.logger import setup_logger
    logger = setup_logger(__name__)
    logger.info("Buscando orçamentos collection=%s", "orcamento")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from painel_crm.config import LOG_DIR, LOG_LEVEL, LOG_TO_FILE


def setup_logger(
    name: str,
    level: str = LOG_LEVEL,
    log_to_file: bool = LOG_TO_FILE,
    log_dir: Path = None,
) -> logging.Logger:
    """
    Configura e retorna um logger.

    Args:
        name: Nome do logger (normalmente __name__ do módulo chamador).
        level: Nível (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_to_file: Também grava em arquivo diário.
        log_dir: Diretório dos arquivos de log (padrão: raiz/logs).
    """
    logger = logging.getLogger(name)

    # Evita handlers duplicados em reruns do Streamlit
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_to_file:
        target_dir = Path(log_dir) if log_dir else LOG_DIR
        target_dir.mkdir(parents=True, exist_ok=True)

        log_file = target_dir / f"{datetime.now().strftime('%Y%m%d')}_painel_crm.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
