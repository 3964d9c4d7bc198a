from __future__ import annotations

import enum
import uuid
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def new_uuid() -> str:
    return str(uuid.uuid4())


class StatusAgendamento(enum.Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    IN_PROGRESS = "in_progress"
    ARRIVED = "arrived"


# Status que ocupam o horario do profissional
STATUS_OCUPAM_HORARIO = (
    StatusAgendamento.SCHEDULED,
    StatusAgendamento.CONFIRMED,
    StatusAgendamento.IN_PROGRESS,
)


class TipoAgendamento(enum.Enum):
    FIRST_VISIT = "first_visit"
    RETURN = "return"
    EXAM = "exam"
    PROCEDURE = "procedure"
    TELEMEDICINE = "telemedicine"


class Clinica(Base):
    __tablename__ = "clinicas"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    nome: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    bloqueada: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    profissionais: Mapped[list["Profissional"]] = relationship(back_populates="clinica", cascade="all, delete-orphan")
    pacientes: Mapped[list["Paciente"]] = relationship(back_populates="clinica", cascade="all, delete-orphan")
    procedimentos: Mapped[list["Procedimento"]] = relationship(back_populates="clinica", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"Clinica({self.nome})"


class Profissional(Base):
    __tablename__ = "profissionais"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    clinica_id: Mapped[str] = mapped_column(ForeignKey("clinicas.id"), nullable=False)
    nome: Mapped[str] = mapped_column(String(120), nullable=False)
    especialidade: Mapped[str | None] = mapped_column(String(120), nullable=True)
    duracao_consulta: Mapped[int] = mapped_column(Integer, default=30, nullable=False)  # minutos
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    clinica: Mapped["Clinica"] = relationship(back_populates="profissionais")
    agendamentos: Mapped[list["Agendamento"]] = relationship(back_populates="profissional", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"Profissional({self.nome}, {self.especialidade})"


class Paciente(Base):
    __tablename__ = "pacientes"
    __table_args__ = (
        UniqueConstraint("clinica_id", "telefone", name="uq_paciente_clinica_telefone"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    clinica_id: Mapped[str] = mapped_column(ForeignKey("clinicas.id"), nullable=False)
    nome: Mapped[str] = mapped_column(String(100), nullable=False)
    telefone: Mapped[str] = mapped_column(String(11), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cpf: Mapped[str | None] = mapped_column(String(11), nullable=True)
    data_nascimento: Mapped[date | None] = mapped_column(Date, nullable=True)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    clinica: Mapped["Clinica"] = relationship(back_populates="pacientes")
    agendamentos: Mapped[list["Agendamento"]] = relationship(back_populates="paciente", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"Paciente({self.nome})"


class Procedimento(Base):
    __tablename__ = "procedimentos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    clinica_id: Mapped[str] = mapped_column(ForeignKey("clinicas.id"), nullable=False)
    nome: Mapped[str] = mapped_column(String(120), nullable=False)
    duracao_minutos: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    preco: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    clinica: Mapped["Clinica"] = relationship(back_populates="procedimentos")
    agendamentos: Mapped[list["Agendamento"]] = relationship(back_populates="procedimento")


class Agendamento(Base):
    __tablename__ = "agendamentos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)

    clinica_id: Mapped[str] = mapped_column(ForeignKey("clinicas.id"), nullable=False)
    paciente_id: Mapped[str] = mapped_column(ForeignKey("pacientes.id"), nullable=False)
    profissional_id: Mapped[str] = mapped_column(ForeignKey("profissionais.id"), nullable=False)
    procedimento_id: Mapped[str | None] = mapped_column(ForeignKey("procedimentos.id"), nullable=True)

    data: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    hora_inicio: Mapped[time] = mapped_column(Time, nullable=False)
    hora_fim: Mapped[time] = mapped_column(Time, nullable=False)
    duracao_minutos: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[StatusAgendamento] = mapped_column(
        Enum(StatusAgendamento), default=StatusAgendamento.SCHEDULED, nullable=False
    )
    tipo: Mapped[TipoAgendamento] = mapped_column(
        Enum(TipoAgendamento), default=TipoAgendamento.FIRST_VISIT, nullable=False
    )

    observacoes: Mapped[str | None] = mapped_column(Text, nullable=True)
    motivo_cancelamento: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelado_em: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    criado_em: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    paciente: Mapped["Paciente"] = relationship(back_populates="agendamentos")
    profissional: Mapped["Profissional"] = relationship(back_populates="agendamentos")
    procedimento: Mapped["Procedimento"] = relationship(back_populates="agendamentos")
