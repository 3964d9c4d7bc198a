"""
Calculo das datas de um agendamento recorrente.

Uma data inicial + uma ConfigRecorrencia geram a serie ordenada de datas;
cada data vira depois um agendamento independente (ver services.agendar_recorrente).
Modulo puro: sem banco, sem framework.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

MIN_SESSOES = 2
# Teto absoluto da serie, vale para os dois modos de limite
MAX_OCORRENCIAS = 52


class Frequencia(enum.Enum):
    SEMANAL = "weekly"
    QUINZENAL = "biweekly"
    MENSAL = "monthly"


class TipoLimite(enum.Enum):
    SESSOES = "sessions"
    DATA = "date"


ROTULOS_FREQUENCIA: dict[Frequencia, str] = {
    Frequencia.SEMANAL: "Semanal",
    Frequencia.QUINZENAL: "Quinzenal",
    Frequencia.MENSAL: "Mensal",
}

DESCRICOES_FREQUENCIA: dict[Frequencia, str] = {
    Frequencia.SEMANAL: "Repete toda semana",
    Frequencia.QUINZENAL: "Repete a cada 2 semanas",
    Frequencia.MENSAL: "Repete uma vez por mês",
}

_RESUMO_FREQUENCIA: dict[Frequencia, str] = {
    Frequencia.SEMANAL: "Toda semana",
    Frequencia.QUINZENAL: "A cada 2 semanas",
    Frequencia.MENSAL: "Uma vez por mês",
}


@dataclass(frozen=True)
class ConfigRecorrencia:
    """
    Regra de repeticao escolhida no formulario de agendamento.
    - ativo=False: nenhuma repeticao, os demais campos sao ignorados
    - sessoes: total de ocorrencias (modo SESSOES), ja limitado pelo chamador
    - data_fim: ultima data permitida, inclusiva (modo DATA), ISO 'YYYY-MM-DD' ou date
    """
    ativo: bool = False
    frequencia: Frequencia = Frequencia.SEMANAL
    tipo_limite: TipoLimite = TipoLimite.SESSOES
    sessoes: int = 4
    data_fim: str | date | None = None


def limitar_sessoes(sessoes: int) -> int:
    """Limita o numero de sessoes ao intervalo aceito pelo formulario [2, 52]."""
    return max(MIN_SESSOES, min(MAX_OCORRENCIAS, sessoes))


def _data_fim(valor: str | date | None) -> date | None:
    if valor is None:
        return None
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    texto = valor.strip()
    if not texto:
        return None
    try:
        return date.fromisoformat(texto[:10])
    except ValueError:
        return None


def _dia(valor: date) -> date:
    return valor.date() if isinstance(valor, datetime) else valor


def _ocorrencia(inicio: date, frequencia: Frequencia, indice: int) -> date:
    """
    Data da ocorrencia de ordem `indice` (0 = inicio).

    Mensal e ancorado no dia do inicio: 31/01 -> 28/02 -> 31/03
    (relativedelta ajusta ao ultimo dia de meses mais curtos).
    """
    if frequencia is Frequencia.SEMANAL:
        return inicio + timedelta(days=7 * indice)
    if frequencia is Frequencia.QUINZENAL:
        return inicio + timedelta(days=14 * indice)
    return inicio + relativedelta(months=indice)


def calcular_datas_recorrentes(inicio: date, config: ConfigRecorrencia) -> list[date]:
    """
    Gera a lista ordenada de datas da serie, sempre comecando por `inicio`.

    `inicio` pode ser date ou datetime: o horario e mantido em todas as
    ocorrencias e ignorado na comparacao com data_fim (fim do dia).
    Nao valida nada nem levanta excecao: data_fim ausente, invalida ou
    anterior ao inicio resulta em [inicio].
    """
    if not config.ativo:
        return [inicio]

    datas = [inicio]

    if config.tipo_limite is TipoLimite.SESSOES:
        total = min(config.sessoes, MAX_OCORRENCIAS)
        for indice in range(1, total):
            datas.append(_ocorrencia(inicio, config.frequencia, indice))
        return datas

    fim = _data_fim(config.data_fim)
    if fim is None:
        return datas

    indice = 1
    while len(datas) < MAX_OCORRENCIAS:
        proxima = _ocorrencia(inicio, config.frequencia, indice)
        if _dia(proxima) > fim:
            break
        datas.append(proxima)
        indice += 1

    return datas


def resumo_recorrencia(config: ConfigRecorrencia) -> str:
    """Frase curta do formulario, ex: 'Toda semana, 4 sessões no total'."""
    if not config.ativo:
        return ""

    resumo = _RESUMO_FREQUENCIA[config.frequencia]
    if config.tipo_limite is TipoLimite.SESSOES:
        return f"{resumo}, {config.sessoes} sessões no total"

    fim = _data_fim(config.data_fim)
    if fim is not None:
        return f"{resumo}, até {fim.strftime('%d/%m/%Y')}"
    return resumo
