"""Test casos de uso de cadastro e agendamento."""
from datetime import date, time, timedelta

import pytest
from sqlalchemy import func, select

from clinica import services
from clinica.db import db_session
from clinica.models import Agendamento, Clinica, Paciente, Procedimento, Profissional, StatusAgendamento
from clinica.recorrencia import ConfigRecorrencia, Frequencia, TipoLimite
from clinica.seed import CLINICA_PADRAO, seed_base
from clinica.services import (
    agenda_diaria_flat,
    agendar_consulta,
    agendar_recorrente,
    cancelar_agendamento,
    cpf_valido,
    criar_clinica,
    criar_paciente,
    criar_profissional,
    lista_pacientes_flat,
    normalizar_telefone,
    obter_ou_criar_paciente,
    previsualizar_recorrencia,
    validar_data_publica,
    verificar_profissional_publico,
)

SEG = date(2025, 1, 6)


def semanal(n):
    return ConfigRecorrencia(ativo=True, frequencia=Frequencia.SEMANAL, tipo_limite=TipoLimite.SESSOES, sessoes=n)


# -------- cadastro --------

def test_normalizar_telefone():
    assert normalizar_telefone("(11) 3333-4444") == "1133334444"
    with pytest.raises(ValueError):
        normalizar_telefone("12345")


@pytest.mark.parametrize("cpf,esperado", [
    ("529.982.247-25", True),
    ("52998224725", True),
    ("52998224724", False),
    ("111.111.111-11", False),
    ("123", False),
])
def test_cpf_valido(cpf, esperado):
    assert cpf_valido(cpf) is esperado


def test_criar_paciente_normaliza_dados(clinica_id):
    pid = criar_paciente(clinica_id, "  Maria Oliveira ", "(21) 99999-0000", " Maria@Example.com ", "529.982.247-25")
    with db_session() as s:
        p = s.get(Paciente, pid)
        assert p.nome == "Maria Oliveira"
        assert p.telefone == "21999990000"
        assert p.email == "maria@example.com"
        assert p.cpf == "52998224725"


@pytest.mark.parametrize("nome,telefone,email,cpf", [
    ("M", "21999990000", None, None),
    ("Maria 123", "21999990000", None, None),
    ("Maria", "999", None, None),
    ("Maria", "21999990000", "sem-arroba", None),
    ("Maria", "21999990000", None, "111.111.111-11"),
])
def test_criar_paciente_recusa_dados_invalidos(clinica_id, nome, telefone, email, cpf):
    with pytest.raises(ValueError):
        criar_paciente(clinica_id, nome, telefone, email, cpf)


def test_criar_paciente_telefone_duplicado(clinica_id, paciente_id):
    with pytest.raises(ValueError, match="Telefone já cadastrado"):
        criar_paciente(clinica_id, "Outro Nome", "11987654321")


def test_criar_paciente_telefone_duplicado_concorrente(clinica_id, paciente_id, monkeypatch):
    """Outro cadastro gravou o mesmo telefone depois da consulta previa: a constraint unica responde."""
    monkeypatch.setattr(services, "_telefone_em_uso", lambda s, clinica_id, telefone: False)
    with pytest.raises(ValueError, match="Telefone já cadastrado"):
        criar_paciente(clinica_id, "Outro Nome", "11987654321")
    with db_session() as s:
        assert s.scalar(select(func.count()).select_from(Paciente)) == 1


def test_obter_ou_criar_paciente_reaproveita_pelo_telefone(clinica_id, paciente_id):
    assert obter_ou_criar_paciente(clinica_id, "João", "11 98765-4321") == paciente_id
    novo = obter_ou_criar_paciente(clinica_id, "Carla Dias", "11912345678")
    assert novo != paciente_id
    assert len(lista_pacientes_flat(clinica_id)) == 2


def test_obter_ou_criar_paciente_inativo(clinica_id, paciente_id):
    with db_session() as s:
        s.get(Paciente, paciente_id).ativo = False
    with pytest.raises(ValueError, match="inativo"):
        obter_ou_criar_paciente(clinica_id, "João", "11987654321")


# -------- agendamento simples --------

def test_agendar_consulta_usa_duracao_do_profissional(paciente_id, profissional_id):
    r = agendar_consulta(paciente_id, profissional_id, SEG, time(9, 0))
    assert r.ok
    with db_session() as s:
        ag = s.get(Agendamento, r.agendamento_id)
        assert ag.hora_fim == time(9, 50)
        assert ag.duracao_minutos == 50
        assert ag.status == StatusAgendamento.SCHEDULED


def test_agendar_consulta_usa_duracao_do_procedimento(paciente_id, profissional_id, procedimento_id):
    r = agendar_consulta(paciente_id, profissional_id, SEG, time(9, 0), procedimento_id=procedimento_id)
    assert r.ok
    itens = agenda_diaria_flat(profissional_id, SEG)
    assert itens[0]["fim"] == "09:40"
    assert itens[0]["procedimento"] == "Sessão de Fisioterapia"


def test_agendar_consulta_conflito_de_horario(paciente_id, profissional_id):
    assert agendar_consulta(paciente_id, profissional_id, SEG, time(9, 0)).ok
    r = agendar_consulta(paciente_id, profissional_id, SEG, time(9, 30))
    assert not r.ok
    assert "ocupado" in r.mensagem
    # encostado no fim do anterior: sem sobreposicao
    assert agendar_consulta(paciente_id, profissional_id, SEG, time(9, 50)).ok


def test_horario_cancelado_fica_livre(paciente_id, profissional_id):
    r = agendar_consulta(paciente_id, profissional_id, SEG, time(10, 0))
    assert cancelar_agendamento(r.agendamento_id, motivo="Paciente desmarcou")
    assert agendar_consulta(paciente_id, profissional_id, SEG, time(10, 0)).ok


@pytest.mark.parametrize("hora", [time(5, 59), time(23, 0)])
def test_agendar_fora_do_expediente(paciente_id, profissional_id, hora):
    r = agendar_consulta(paciente_id, profissional_id, SEG, hora)
    assert not r.ok
    assert "expediente" in r.mensagem


def test_agendar_duracao_invalida(paciente_id, profissional_id):
    r = agendar_consulta(paciente_id, profissional_id, SEG, time(9, 0), duracao_minutos=600)
    assert not r.ok


def test_agendar_clinica_bloqueada(clinica_id, paciente_id, profissional_id):
    with db_session() as s:
        s.get(Clinica, clinica_id).bloqueada = True
    r = agendar_consulta(paciente_id, profissional_id, SEG, time(9, 0))
    assert not r.ok
    assert "não está aceitando" in r.mensagem


def test_agendar_profissional_inexistente(paciente_id):
    r = agendar_consulta(paciente_id, "nao-existe", SEG, time(9, 0))
    assert not r.ok
    assert r.agendamento_id is None


# -------- recorrencia --------

def test_previsualizar_nao_grava(profissional_id):
    datas = previsualizar_recorrencia(SEG, semanal(4))
    assert len(datas) == 4
    assert agenda_diaria_flat(profissional_id, SEG) == []


def test_agendar_recorrente_cria_um_agendamento_por_data(paciente_id, profissional_id):
    serie = agendar_recorrente(paciente_id, profissional_id, SEG, time(14, 0), semanal(4))
    assert serie.criados == 4
    assert serie.falhas == 0
    assert serie.resumo == "Toda semana, 4 sessões no total"
    assert [r.data for r in serie.resultados] == [date(2025, 1, 6), date(2025, 1, 13), date(2025, 1, 20), date(2025, 1, 27)]
    assert len(set(serie.agendamento_ids)) == 4
    for r in serie.resultados:
        assert len(agenda_diaria_flat(profissional_id, r.data)) == 1


def test_agendar_recorrente_falha_parcial_mantem_os_demais(paciente_id, profissional_id):
    """Uma data ocupada no meio da serie nao desfaz as outras."""
    ocupado = agendar_consulta(paciente_id, profissional_id, date(2025, 1, 13), time(14, 0))
    assert ocupado.ok

    serie = agendar_recorrente(paciente_id, profissional_id, SEG, time(14, 0), semanal(3))
    assert serie.criados == 2
    assert serie.falhas == 1
    assert [r.ok for r in serie.resultados] == [True, False, True]
    assert serie.resultados[1].data == date(2025, 1, 13)

    with db_session() as s:
        total = s.scalar(select(func.count()).select_from(Agendamento))
    assert total == 3


def test_agendar_recorrente_inativa_cria_so_um(paciente_id, profissional_id):
    serie = agendar_recorrente(paciente_id, profissional_id, SEG, time(8, 0), ConfigRecorrencia(ativo=False))
    assert serie.criados == 1
    assert serie.resumo == ""


def test_agendar_recorrente_profissional_de_outra_clinica(paciente_id):
    outra = criar_clinica("Outra Clínica")
    prof = criar_profissional(outra, "Pedro Alves")
    serie = agendar_recorrente(paciente_id, prof, SEG, time(9, 0), semanal(2))
    assert serie.criados == 0
    assert all(r.mensagem == "Paciente não encontrado." for r in serie.resultados)


# -------- cancelamento / agenda --------

def test_cancelar_agendamento(paciente_id, profissional_id):
    r = agendar_consulta(paciente_id, profissional_id, SEG, time(9, 0))
    assert cancelar_agendamento(r.agendamento_id, motivo="Sem motivo")
    assert not cancelar_agendamento(r.agendamento_id)
    assert not cancelar_agendamento("nao-existe")

    with db_session() as s:
        ag = s.get(Agendamento, r.agendamento_id)
        assert ag.status == StatusAgendamento.CANCELLED
        assert ag.motivo_cancelamento == "Sem motivo"
        assert ag.cancelado_em is not None

    assert agenda_diaria_flat(profissional_id, SEG) == []


def test_agenda_diaria_ordenada(paciente_id, profissional_id):
    agendar_consulta(paciente_id, profissional_id, SEG, time(15, 0))
    agendar_consulta(paciente_id, profissional_id, SEG, time(8, 0))
    itens = agenda_diaria_flat(profissional_id, SEG)
    assert [i["inicio"] for i in itens] == ["08:00", "15:00"]
    assert itens[0]["paciente"] == "João da Silva"


# -------- agendamento publico --------

HOJE = date(2025, 3, 10)


def test_validar_data_publica_dentro_da_janela():
    validar_data_publica(HOJE, hoje=HOJE)
    validar_data_publica(HOJE + timedelta(days=90), hoje=HOJE)


def test_validar_data_publica_recusa_passado():
    with pytest.raises(ValueError, match="datas passadas"):
        validar_data_publica(HOJE - timedelta(days=1), hoje=HOJE)


def test_validar_data_publica_recusa_depois_de_90_dias():
    with pytest.raises(ValueError, match="próximos 90 dias"):
        validar_data_publica(HOJE + timedelta(days=91), hoje=HOJE)


def test_verificar_profissional_publico(clinica_id, profissional_id):
    verificar_profissional_publico(clinica_id, profissional_id)

    outra = criar_clinica("Outra Clínica")
    with pytest.raises(LookupError):
        verificar_profissional_publico(outra, profissional_id)
    with pytest.raises(LookupError):
        verificar_profissional_publico(clinica_id, "nao-existe")

    with db_session() as s:
        s.get(Profissional, profissional_id).ativo = False
    with pytest.raises(LookupError, match="Profissional não encontrado"):
        verificar_profissional_publico(clinica_id, profissional_id)


def test_verificar_profissional_publico_clinica_bloqueada(clinica_id, profissional_id):
    with db_session() as s:
        s.get(Clinica, clinica_id).bloqueada = True
    with pytest.raises(ValueError, match="não está aceitando"):
        verificar_profissional_publico(clinica_id, profissional_id)


# -------- seed --------

def test_seed_base_idempotente():
    primeiro = seed_base()
    segundo = seed_base()
    assert primeiro == segundo

    with db_session() as s:
        assert s.scalar(select(func.count()).select_from(Clinica).where(Clinica.nome == CLINICA_PADRAO)) == 1
        assert s.scalar(select(func.count()).select_from(Profissional)) == 3
        assert s.scalar(select(func.count()).select_from(Procedimento)) == 4
