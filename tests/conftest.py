"""Fixtures compartilhadas: banco SQLite temporario e cadastros minimos."""
import os
import tempfile
from pathlib import Path

# precisa vir antes de importar clinica.db (engine criado no import)
_TMP_DIR = Path(tempfile.mkdtemp(prefix="agenda_clinica_tests_"))
os.environ["CLINICA_DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.sqlite'}"

import pytest  # noqa: E402

from clinica.db import Base, engine  # noqa: E402
from clinica.services import (  # noqa: E402
    criar_clinica,
    criar_paciente,
    criar_procedimento,
    criar_profissional,
)


@pytest.fixture(autouse=True)
def banco_limpo():
    """Recria todas as tabelas a cada teste."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def clinica_id():
    return criar_clinica("Clínica Teste")


@pytest.fixture
def profissional_id(clinica_id):
    return criar_profissional(clinica_id, "Ana Souza", "Fisioterapia", duracao_consulta=50)


@pytest.fixture
def paciente_id(clinica_id):
    return criar_paciente(clinica_id, "João da Silva", "(11) 98765-4321", "joao@example.com")


@pytest.fixture
def procedimento_id(clinica_id):
    return criar_procedimento(clinica_id, "Sessão de Fisioterapia", duracao_minutos=40, preco=120)
