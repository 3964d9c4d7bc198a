from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .config import HORA_ABERTURA, HORA_FECHAMENTO
from .db import Base, db_session, engine
from .models import (
    STATUS_OCUPAM_HORARIO,
    Agendamento,
    Clinica,
    Paciente,
    Procedimento,
    Profissional,
    StatusAgendamento,
    TipoAgendamento,
)
from .recorrencia import ConfigRecorrencia, calcular_datas_recorrentes, resumo_recorrencia

logger = logging.getLogger(__name__)

DURACAO_MINIMA = 5
DURACAO_MAXIMA = 480
JANELA_AGENDAMENTO_PUBLICO_DIAS = 90

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NOME_RE = re.compile(r"^[a-zA-ZÀ-ÿ\s'-]+$")


# =========================
# Bootstrap DB
# =========================
def init_db() -> None:
    """Cria as tabelas que ainda nao existem."""
    Base.metadata.create_all(bind=engine)


# =========================
# Resultados
# =========================
@dataclass(frozen=True)
class ResultadoAgendamento:
    ok: bool
    agendamento_id: str | None
    data: date
    mensagem: str


@dataclass(frozen=True)
class ResultadoRecorrencia:
    """Resultado de uma serie: um ResultadoAgendamento por data gerada, na ordem."""
    resultados: tuple[ResultadoAgendamento, ...]
    resumo: str

    @property
    def criados(self) -> int:
        return sum(1 for r in self.resultados if r.ok)

    @property
    def falhas(self) -> int:
        return sum(1 for r in self.resultados if not r.ok)

    @property
    def agendamento_ids(self) -> list[str]:
        return [r.agendamento_id for r in self.resultados if r.agendamento_id]


# =========================
# Validacao de cadastro
# =========================
def normalizar_telefone(telefone: str) -> str:
    digitos = re.sub(r"\D", "", telefone or "")
    if len(digitos) < 10 or len(digitos) > 11:
        raise ValueError("Telefone deve ter 10 ou 11 dígitos.")
    return digitos


def cpf_valido(cpf: str) -> bool:
    """Confere tamanho e os dois digitos verificadores do CPF."""
    digitos = re.sub(r"\D", "", cpf or "")
    if len(digitos) != 11 or digitos == digitos[0] * 11:
        return False

    for tamanho in (9, 10):
        soma = sum(int(digitos[i]) * (tamanho + 1 - i) for i in range(tamanho))
        resto = (soma * 10) % 11
        if resto == 10:
            resto = 0
        if resto != int(digitos[tamanho]):
            return False
    return True


def _validar_nome(nome: str) -> str:
    nome = (nome or "").strip()
    if len(nome) < 2 or len(nome) > 100:
        raise ValueError("Nome deve ter entre 2 e 100 caracteres.")
    if not _NOME_RE.match(nome):
        raise ValueError("Nome contém caracteres inválidos.")
    return nome


def _validar_email(email: str | None) -> str | None:
    if not email or not email.strip():
        return None
    email = email.strip().lower()
    if len(email) > 255 or not _EMAIL_RE.match(email):
        raise ValueError("Email inválido.")
    return email


def _validar_cpf(cpf: str | None) -> str | None:
    if not cpf or not cpf.strip():
        return None
    if not cpf_valido(cpf):
        raise ValueError("CPF inválido.")
    return re.sub(r"\D", "", cpf)


# =========================
# CRUD base
# =========================
def criar_clinica(nome: str) -> str:
    with db_session() as s:
        c = Clinica(nome=nome.strip())
        s.add(c)
        s.flush()
        return c.id


def criar_profissional(
    clinica_id: str,
    nome: str,
    especialidade: str | None = None,
    duracao_consulta: int = 30,
) -> str:
    with db_session() as s:
        if s.get(Clinica, clinica_id) is None:
            raise ValueError("Clínica não encontrada.")
        p = Profissional(
            clinica_id=clinica_id,
            nome=nome.strip(),
            especialidade=especialidade,
            duracao_consulta=duracao_consulta,
        )
        s.add(p)
        s.flush()
        return p.id


def criar_procedimento(clinica_id: str, nome: str, duracao_minutos: int = 30, preco: Decimal | float = 0) -> str:
    with db_session() as s:
        if s.get(Clinica, clinica_id) is None:
            raise ValueError("Clínica não encontrada.")
        p = Procedimento(clinica_id=clinica_id, nome=nome.strip(), duracao_minutos=duracao_minutos, preco=Decimal(str(preco)))
        s.add(p)
        s.flush()
        return p.id


def criar_paciente(
    clinica_id: str,
    nome: str,
    telefone: str,
    email: str | None = None,
    cpf: str | None = None,
) -> str:
    nome = _validar_nome(nome)
    telefone = normalizar_telefone(telefone)
    email = _validar_email(email)
    cpf = _validar_cpf(cpf)

    with db_session() as s:
        if s.get(Clinica, clinica_id) is None:
            raise ValueError("Clínica não encontrada.")

        if _telefone_em_uso(s, clinica_id, telefone):
            raise ValueError("Telefone já cadastrado nesta clínica.")

        p = Paciente(clinica_id=clinica_id, nome=nome, telefone=telefone, email=email, cpf=cpf)
        s.add(p)
        try:
            s.flush()
        except IntegrityError as e:
            # cadastro concorrente com o mesmo telefone
            raise ValueError("Telefone já cadastrado nesta clínica.") from e
        logger.info("Paciente criado: %s (clinica %s)", p.id, clinica_id)
        return p.id


def _telefone_em_uso(s, clinica_id: str, telefone: str) -> bool:
    return s.execute(
        select(Paciente.id).where(Paciente.clinica_id == clinica_id, Paciente.telefone == telefone)
    ).first() is not None


def obter_ou_criar_paciente(
    clinica_id: str,
    nome: str,
    telefone: str,
    email: str | None = None,
    cpf: str | None = None,
) -> str:
    """
    Usado no agendamento publico: procura o paciente pelo telefone na clinica,
    senao cria. Paciente inativo nao pode agendar.
    """
    tel = normalizar_telefone(telefone)
    cpf_limpo = _validar_cpf(cpf)

    with db_session() as s:
        p = s.execute(
            select(Paciente).where(Paciente.clinica_id == clinica_id, Paciente.telefone == tel)
        ).scalar_one_or_none()
        if p is not None:
            if not p.ativo:
                raise ValueError("Seu cadastro está inativo. Entre em contato com a clínica para reativar.")
            if cpf_limpo and not p.cpf:
                p.cpf = cpf_limpo
            return p.id

    return criar_paciente(clinica_id, nome, tel, email, cpf_limpo)


# =========================
# Regras do agendamento publico
# =========================
def validar_data_publica(dia: date, hoje: date | None = None) -> None:
    """Agendamento publico: de hoje ate JANELA_AGENDAMENTO_PUBLICO_DIAS a frente."""
    hoje = hoje or date.today()
    if dia < hoje:
        raise ValueError("Não é possível agendar para datas passadas.")
    if dia > hoje + timedelta(days=JANELA_AGENDAMENTO_PUBLICO_DIAS):
        raise ValueError(f"Agendamentos permitidos apenas para os próximos {JANELA_AGENDAMENTO_PUBLICO_DIAS} dias.")


def verificar_profissional_publico(clinica_id: str, profissional_id: str) -> None:
    """
    Confere clinica e profissional antes de tocar no cadastro do paciente.
    LookupError: profissional inexistente, de outra clinica ou inativo.
    ValueError: clinica bloqueada.
    """
    with db_session() as s:
        prof = s.get(Profissional, profissional_id)
        if prof is None or prof.clinica_id != clinica_id or not prof.ativo:
            raise LookupError("Profissional não encontrado.")
        clinica = s.get(Clinica, clinica_id)
        if clinica is None or clinica.bloqueada:
            raise ValueError("Esta clínica não está aceitando agendamentos no momento.")


# =========================
# Consultas
# =========================
def lista_clinicas_flat() -> list[dict]:
    with db_session() as s:
        rows = s.execute(select(Clinica.id, Clinica.nome, Clinica.bloqueada).order_by(Clinica.nome)).all()
        return [{"id": r.id, "nome": r.nome, "bloqueada": r.bloqueada} for r in rows]


def lista_profissionais_flat(clinica_id: str) -> list[dict]:
    with db_session() as s:
        rows = s.execute(
            select(Profissional.id, Profissional.nome, Profissional.especialidade, Profissional.duracao_consulta)
            .where(Profissional.clinica_id == clinica_id, Profissional.ativo.is_(True))
            .order_by(Profissional.nome)
        ).all()
        return [
            {
                "id": r.id,
                "nome": r.nome,
                "especialidade": r.especialidade,
                "duracao_consulta": r.duracao_consulta,
            }
            for r in rows
        ]


def lista_pacientes_flat(clinica_id: str) -> list[dict]:
    with db_session() as s:
        rows = s.execute(
            select(Paciente.id, Paciente.nome, Paciente.telefone, Paciente.email)
            .where(Paciente.clinica_id == clinica_id, Paciente.ativo.is_(True))
            .order_by(Paciente.nome)
        ).all()
        return [{"id": r.id, "nome": r.nome, "telefone": r.telefone, "email": r.email} for r in rows]


def lista_procedimentos_flat(clinica_id: str) -> list[dict]:
    with db_session() as s:
        rows = s.execute(
            select(Procedimento.id, Procedimento.nome, Procedimento.duracao_minutos, Procedimento.preco)
            .where(Procedimento.clinica_id == clinica_id, Procedimento.ativo.is_(True))
            .order_by(Procedimento.nome)
        ).all()
        return [
            {"id": r.id, "nome": r.nome, "duracao_minutos": r.duracao_minutos, "preco": str(r.preco)}
            for r in rows
        ]


def agenda_diaria_flat(profissional_id: str, dia: date) -> list[dict]:
    """
    Agenda do dia em dicts serializaveis (sem lazy-load fora da sessao).
    Agendamentos cancelados ficam de fora.
    """
    with db_session() as s:
        q = (
            select(
                Agendamento.id,
                Agendamento.hora_inicio,
                Agendamento.hora_fim,
                Agendamento.status,
                Agendamento.tipo,
                Agendamento.observacoes,
                Paciente.nome.label("paciente_nome"),
                Procedimento.nome.label("procedimento_nome"),
            )
            .join(Paciente, Paciente.id == Agendamento.paciente_id)
            .outerjoin(Procedimento, Procedimento.id == Agendamento.procedimento_id)
            .where(
                and_(
                    Agendamento.profissional_id == profissional_id,
                    Agendamento.data == dia,
                    Agendamento.status != StatusAgendamento.CANCELLED,
                )
            )
            .order_by(Agendamento.hora_inicio.asc())
        )

        rows = s.execute(q).all()
        return [
            {
                "id": r.id,
                "inicio": r.hora_inicio.strftime("%H:%M"),
                "fim": r.hora_fim.strftime("%H:%M"),
                "status": r.status.value,
                "tipo": r.tipo.value,
                "observacoes": r.observacoes,
                "paciente": r.paciente_nome,
                "procedimento": r.procedimento_nome,
            }
            for r in rows
        ]


# =========================
# Disponibilidade
# =========================
def _horario_livre(s, profissional_id: str, dia: date, inicio: time, fim: time) -> bool:
    """Sem sobreposicao [inicio, fim) com agendamentos que ocupam horario."""
    overlap = (
        select(Agendamento.id)
        .where(
            and_(
                Agendamento.profissional_id == profissional_id,
                Agendamento.data == dia,
                Agendamento.status.in_(STATUS_OCUPAM_HORARIO),
                Agendamento.hora_inicio < fim,
                Agendamento.hora_fim > inicio,
            )
        )
        .limit(1)
    )
    return s.execute(overlap).first() is None


# =========================
# Agendamento (caso de uso central)
# =========================
def agendar_consulta(
    paciente_id: str,
    profissional_id: str,
    dia: date,
    hora_inicio: time,
    procedimento_id: str | None = None,
    duracao_minutos: int | None = None,
    tipo: TipoAgendamento = TipoAgendamento.FIRST_VISIT,
    observacoes: str | None = None,
) -> ResultadoAgendamento:
    """
    Caso de uso: agendar uma consulta.
    - duracao: explicita, senao a do procedimento, senao a padrao do profissional
    - verifica clinica, profissional, paciente e procedimento
    - verifica sobreposicao na agenda do profissional
    Recusas de negocio voltam como ResultadoAgendamento(ok=False).
    """
    with db_session() as s:
        prof = s.get(Profissional, profissional_id)
        if prof is None:
            return ResultadoAgendamento(False, None, dia, "Profissional não encontrado.")

        clinica = s.get(Clinica, prof.clinica_id)
        if clinica is None or clinica.bloqueada:
            return ResultadoAgendamento(False, None, dia, "Esta clínica não está aceitando agendamentos no momento.")

        if not prof.ativo:
            return ResultadoAgendamento(False, None, dia, "Este profissional não está disponível.")

        paciente = s.get(Paciente, paciente_id)
        if paciente is None or paciente.clinica_id != prof.clinica_id:
            return ResultadoAgendamento(False, None, dia, "Paciente não encontrado.")
        if not paciente.ativo:
            return ResultadoAgendamento(False, None, dia, "Cadastro do paciente está inativo.")

        procedimento = None
        if procedimento_id:
            procedimento = s.get(Procedimento, procedimento_id)
            if procedimento is None or procedimento.clinica_id != prof.clinica_id or not procedimento.ativo:
                return ResultadoAgendamento(False, None, dia, "Procedimento não disponível.")

        duracao = duracao_minutos or (procedimento.duracao_minutos if procedimento else prof.duracao_consulta)
        if duracao < DURACAO_MINIMA or duracao > DURACAO_MAXIMA:
            return ResultadoAgendamento(False, None, dia, "Duração da consulta inválida.")

        if hora_inicio.hour < HORA_ABERTURA or hora_inicio.hour > HORA_FECHAMENTO:
            return ResultadoAgendamento(False, None, dia, "Horário fora do expediente permitido.")

        fim_dt = datetime.combine(dia, hora_inicio) + timedelta(minutes=duracao)
        if fim_dt.date() != dia:
            return ResultadoAgendamento(False, None, dia, "A consulta deve terminar no mesmo dia.")
        hora_fim = fim_dt.time()

        if not _horario_livre(s, profissional_id, dia, hora_inicio, hora_fim):
            logger.info(
                "Conflito de horario: profissional %s em %s %s-%s",
                profissional_id, dia.isoformat(), hora_inicio.strftime("%H:%M"), hora_fim.strftime("%H:%M"),
            )
            return ResultadoAgendamento(False, None, dia, "Este horário já está ocupado.")

        ag = Agendamento(
            clinica_id=prof.clinica_id,
            paciente_id=paciente_id,
            profissional_id=profissional_id,
            procedimento_id=procedimento.id if procedimento else None,
            data=dia,
            hora_inicio=hora_inicio,
            hora_fim=hora_fim,
            duracao_minutos=duracao,
            status=StatusAgendamento.SCHEDULED,
            tipo=tipo,
            observacoes=observacoes,
        )
        s.add(ag)
        s.flush()

        logger.info("Agendamento %s criado para %s %s", ag.id, dia.isoformat(), hora_inicio.strftime("%H:%M"))
        return ResultadoAgendamento(
            True, ag.id, dia, f"Agendamento confirmado para {dia.strftime('%d/%m/%Y')} às {hora_inicio.strftime('%H:%M')}."
        )


def previsualizar_recorrencia(inicio: date, recorrencia: ConfigRecorrencia) -> list[date]:
    """Datas que agendar_recorrente tentaria criar, sem gravar nada."""
    return calcular_datas_recorrentes(inicio, recorrencia)


def agendar_recorrente(
    paciente_id: str,
    profissional_id: str,
    dia_inicio: date,
    hora_inicio: time,
    recorrencia: ConfigRecorrencia,
    procedimento_id: str | None = None,
    duracao_minutos: int | None = None,
    tipo: TipoAgendamento = TipoAgendamento.FIRST_VISIT,
    observacoes: str | None = None,
) -> ResultadoRecorrencia:
    """
    Caso de uso: agendamento recorrente.

    Expande dia_inicio com a recorrencia e cria um agendamento por data,
    cada um na sua propria transacao. Falha parcial nao desfaz as datas ja
    criadas: o resultado traz o desfecho de cada data.
    """
    datas = calcular_datas_recorrentes(dia_inicio, recorrencia)
    resultados: list[ResultadoAgendamento] = []

    for dia in datas:
        try:
            r = agendar_consulta(
                paciente_id=paciente_id,
                profissional_id=profissional_id,
                dia=dia,
                hora_inicio=hora_inicio,
                procedimento_id=procedimento_id,
                duracao_minutos=duracao_minutos,
                tipo=tipo,
                observacoes=observacoes,
            )
        except SQLAlchemyError:
            logger.exception("Erro ao gravar agendamento de %s", dia.isoformat())
            r = ResultadoAgendamento(False, None, dia, "Erro ao gravar agendamento.")
        resultados.append(r)

    resultado = ResultadoRecorrencia(resultados=tuple(resultados), resumo=resumo_recorrencia(recorrencia))
    if resultado.falhas:
        logger.warning(
            "Serie recorrente com falhas: %d criados, %d recusados (paciente %s)",
            resultado.criados, resultado.falhas, paciente_id,
        )
    return resultado


def cancelar_agendamento(agendamento_id: str, motivo: str | None = None) -> bool:
    """
    Caso de uso: cancelar agendamento.
    False se nao existe ou ja esta cancelado.
    """
    with db_session() as s:
        ag = s.get(Agendamento, agendamento_id)
        if not ag or ag.status == StatusAgendamento.CANCELLED:
            return False

        ag.status = StatusAgendamento.CANCELLED
        ag.motivo_cancelamento = motivo
        ag.cancelado_em = datetime.utcnow()
        logger.info("Agendamento %s cancelado (motivo: %s)", agendamento_id, motivo or "n/d")
        return True
