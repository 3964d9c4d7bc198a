from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select

from .db import db_session
from .models import Clinica, Procedimento, Profissional

CLINICA_PADRAO = "Clínica Central"


def seed_base() -> str:
    """
    Popula dados minimos (idempotente) e devolve o id da clinica padrao:
    - clinica
    - profissionais
    - procedimentos
    """
    with db_session() as s:
        clinica = s.execute(select(Clinica).where(Clinica.nome == CLINICA_PADRAO)).scalar_one_or_none()
        if clinica is None:
            clinica = Clinica(nome=CLINICA_PADRAO)
            s.add(clinica)
            s.flush()

        # Procedimentos
        procedimentos = [
            ("Consulta", 30, Decimal("150.00")),
            ("Retorno", 20, Decimal("0.00")),
            ("Sessão de Fisioterapia", 50, Decimal("120.00")),
            ("Sessão de Psicoterapia", 50, Decimal("180.00")),
        ]
        for nome, duracao, preco in procedimentos:
            exists = s.execute(
                select(Procedimento).where(Procedimento.clinica_id == clinica.id, Procedimento.nome == nome)
            ).scalar_one_or_none()
            if exists is None:
                s.add(Procedimento(clinica_id=clinica.id, nome=nome, duracao_minutos=duracao, preco=preco))

        # Profissionais
        profissionais = [
            ("Ana Souza", "Clínica Geral", 30),
            ("Carlos Lima", "Fisioterapia", 50),
            ("Beatriz Rocha", "Psicologia", 50),
        ]
        for nome, especialidade, duracao in profissionais:
            exists = s.execute(
                select(Profissional).where(Profissional.clinica_id == clinica.id, Profissional.nome == nome)
            ).scalar_one_or_none()
            if exists is None:
                s.add(
                    Profissional(
                        clinica_id=clinica.id, nome=nome, especialidade=especialidade, duracao_consulta=duracao
                    )
                )

        return clinica.id
