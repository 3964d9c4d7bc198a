from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, time
from typing import Any

from fastapi import FastAPI, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from .config import configurar_logging
from .models import TipoAgendamento
from .recorrencia import ConfigRecorrencia, Frequencia, TipoLimite, limitar_sessoes, resumo_recorrencia
from .seed import seed_base
from .services import (
    ResultadoAgendamento,
    agenda_diaria_flat,
    agendar_consulta,
    agendar_recorrente,
    cancelar_agendamento,
    criar_paciente,
    init_db,
    lista_clinicas_flat,
    lista_pacientes_flat,
    lista_procedimentos_flat,
    lista_profissionais_flat,
    obter_ou_criar_paciente,
    previsualizar_recorrencia,
    validar_data_publica,
    verificar_profissional_publico,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Cria tabelas e seed base (idempotente)
    configurar_logging()
    init_db()
    seed_base()
    logger.info("Agenda Clinica API pronta")
    yield


app = FastAPI(title="Agenda Clinica API", version="1.0.0", lifespan=lifespan)



# Schemas

class RecorrenciaIn(BaseModel):
    ativo: bool = False
    frequencia: Frequencia = Frequencia.SEMANAL
    tipo_limite: TipoLimite = TipoLimite.SESSOES
    sessoes: int = 4
    data_fim: date | None = None

    @field_validator("sessoes")
    @classmethod
    def limitar_sessoes_form(cls, v: int) -> int:
        # o formulario limita em vez de recusar
        return limitar_sessoes(v)

    def para_config(self) -> ConfigRecorrencia:
        return ConfigRecorrencia(
            ativo=self.ativo,
            frequencia=self.frequencia,
            tipo_limite=self.tipo_limite,
            sessoes=self.sessoes,
            data_fim=self.data_fim,
        )


class PreviewRecorrenciaIn(BaseModel):
    data_inicio: date
    recorrencia: RecorrenciaIn


class PacienteCreateIn(BaseModel):
    clinica_id: str
    nome: str
    telefone: str
    email: str | None = None
    cpf: str | None = None


class AgendamentoCreateIn(BaseModel):
    # agendamento interno (paciente ja cadastrado)
    paciente_id: str
    profissional_id: str
    data: date
    hora_inicio: time
    procedimento_id: str | None = None
    duracao_minutos: int | None = Field(default=None, ge=5, le=480)
    tipo: TipoAgendamento = TipoAgendamento.FIRST_VISIT
    observacoes: str | None = None
    recorrencia: RecorrenciaIn | None = None


class AgendamentoPublicoIn(BaseModel):
    # agendamento publico (procura ou cria o paciente pelo telefone)
    clinica_id: str
    profissional_id: str
    data: date
    hora_inicio: time
    procedimento_id: str | None = None
    tipo: TipoAgendamento = TipoAgendamento.FIRST_VISIT
    observacoes: str | None = None

    nome: str = Field(..., min_length=2, max_length=100)
    telefone: str
    email: str | None = None
    cpf: str | None = None


class CancelamentoIn(BaseModel):
    motivo: str | None = None



# Helpers de resposta

def _resultado_dict(r: ResultadoAgendamento) -> dict[str, Any]:
    return {
        "ok": r.ok,
        "mensagem": r.mensagem,
        "agendamento_id": r.agendamento_id,
        "data": r.data.isoformat(),
    }



# Cadastros (leitura)

@app.get("/api/clinicas")
def api_clinicas() -> list[dict]:
    return lista_clinicas_flat()


@app.get("/api/profissionais")
def api_profissionais(clinica_id: str = Query(...)) -> list[dict]:
    return lista_profissionais_flat(clinica_id)


@app.get("/api/procedimentos")
def api_procedimentos(clinica_id: str = Query(...)) -> list[dict]:
    return lista_procedimentos_flat(clinica_id)


@app.get("/api/pacientes")
def api_pacientes(clinica_id: str = Query(...)) -> list[dict]:
    return lista_pacientes_flat(clinica_id)


@app.post("/api/pacientes")
def api_criar_paciente(payload: PacienteCreateIn) -> dict[str, Any]:
    try:
        pid = criar_paciente(payload.clinica_id, payload.nome, payload.telefone, payload.email, payload.cpf)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"ok": True, "paciente_id": pid}



# Recorrencia

@app.post("/api/recorrencia/preview")
def api_preview_recorrencia(payload: PreviewRecorrenciaIn) -> dict[str, Any]:
    config = payload.recorrencia.para_config()
    datas = previsualizar_recorrencia(payload.data_inicio, config)
    return {
        "datas": [d.isoformat() for d in datas],
        "total": len(datas),
        "resumo": resumo_recorrencia(config),
    }



# Agendamentos

@app.post("/api/agendamentos")
def api_criar_agendamento(payload: AgendamentoCreateIn) -> dict[str, Any]:
    """
    Sem recorrencia (ou recorrencia inativa): um agendamento.
    Com recorrencia ativa: um agendamento por data gerada, independentes entre si.
    """
    if payload.recorrencia is not None and payload.recorrencia.ativo:
        serie = agendar_recorrente(
            paciente_id=payload.paciente_id,
            profissional_id=payload.profissional_id,
            dia_inicio=payload.data,
            hora_inicio=payload.hora_inicio,
            recorrencia=payload.recorrencia.para_config(),
            procedimento_id=payload.procedimento_id,
            duracao_minutos=payload.duracao_minutos,
            tipo=payload.tipo,
            observacoes=payload.observacoes,
        )
        return {
            "ok": serie.criados > 0,
            "recorrente": True,
            "resumo": serie.resumo,
            "criados": serie.criados,
            "falhas": serie.falhas,
            "resultados": [_resultado_dict(r) for r in serie.resultados],
        }

    resultado = agendar_consulta(
        paciente_id=payload.paciente_id,
        profissional_id=payload.profissional_id,
        dia=payload.data,
        hora_inicio=payload.hora_inicio,
        procedimento_id=payload.procedimento_id,
        duracao_minutos=payload.duracao_minutos,
        tipo=payload.tipo,
        observacoes=payload.observacoes,
    )
    return {"recorrente": False, **_resultado_dict(resultado)}


@app.post("/api/public/agendamentos")
def api_agendamento_publico(payload: AgendamentoPublicoIn) -> dict[str, Any]:
    """
    Agendamento sem cadastro previo:
    - data entre hoje e os proximos 90 dias
    - profissional ativo da clinica informada
    - procura o paciente pelo telefone (ou cria)
    - tenta agendar a consulta
    """
    try:
        validar_data_publica(payload.data)
        verificar_profissional_publico(payload.clinica_id, payload.profissional_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        paciente_id = obter_ou_criar_paciente(
            payload.clinica_id,
            payload.nome,
            payload.telefone,
            payload.email,
            payload.cpf,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    resultado = agendar_consulta(
        paciente_id=paciente_id,
        profissional_id=payload.profissional_id,
        dia=payload.data,
        hora_inicio=payload.hora_inicio,
        procedimento_id=payload.procedimento_id,
        tipo=payload.tipo,
        observacoes=payload.observacoes,
    )
    return {**_resultado_dict(resultado), "paciente_id": paciente_id}


@app.get("/api/agenda")
def api_agenda(
    profissional_id: str = Query(...),
    dia: date = Query(...),
) -> list[dict]:
    return agenda_diaria_flat(profissional_id, dia)


@app.post("/api/agendamentos/{agendamento_id}/cancelar")
def api_cancelar(agendamento_id: str, payload: CancelamentoIn | None = None) -> dict[str, Any]:
    motivo = payload.motivo if payload else None
    if not cancelar_agendamento(agendamento_id, motivo=motivo):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Agendamento não encontrado ou já cancelado")
    return {"ok": True, "agendamento_id": agendamento_id}
