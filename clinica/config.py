from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# SQLite em arquivo na raiz do projeto, sobrescrevivel via env
DB_PATH = Path(__file__).resolve().parents[1] / "agenda_clinica.sqlite"
DATABASE_URL = os.getenv("CLINICA_DATABASE_URL", f"sqlite:///{DB_PATH}")
SQL_ECHO = os.getenv("CLINICA_SQL_ECHO", "0").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("CLINICA_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Janela de expediente aceita para inicio de consulta (06:00 - 22:00)
HORA_ABERTURA = int(os.getenv("CLINICA_HORA_ABERTURA", "6"))
HORA_FECHAMENTO = int(os.getenv("CLINICA_HORA_FECHAMENTO", "22"))


def configurar_logging(level: str | None = None) -> None:
    """Configura o logging raiz; chamado apenas pelos entry points (CLI, API)."""
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)
