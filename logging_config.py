"""
Configuração de logging da API e do CLI de migrations.
O pacote `database` segue o nível configurado; SQLAlchemy e os drivers
só aparecem a partir de WARNING, a menos que LOG_LEVEL seja DEBUG.
"""
import logging
from typing import Optional

from config import settings

# Loggers de terceiros que repetem cada instrução SQL em INFO
NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "aiomysql")


def setup_logging(level: Optional[str] = None) -> int:
    """Inicializa o logging e devolve o nível aplicado ao pacote `database`."""
    resolved_level = getattr(logging, (level or settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=resolved_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("database").setLevel(resolved_level)

    third_party_level = resolved_level if resolved_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)
    return resolved_level
