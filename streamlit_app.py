from __future__ import annotations

import os
from datetime import date, datetime, time, timedelta

import requests
import streamlit as st

st.set_page_config(page_title="Agenda Clínica", layout="wide")

API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")

FREQUENCIAS = {
    "weekly": ("Semanal", "Repete toda semana"),
    "biweekly": ("Quinzenal", "Repete a cada 2 semanas"),
    "monthly": ("Mensal", "Repete uma vez por mês"),
}



# HTTP client

def api_get(path: str, params: dict | None = None) -> dict | list:
    r = requests.get(f"{API_BASE}{path}", params=params, timeout=10)
    r.raise_for_status()
    return r.json()


def api_post(path: str, payload: dict) -> dict:
    r = requests.post(f"{API_BASE}{path}", json=payload, timeout=30)
    if r.status_code == 400:
        raise ValueError(r.json().get("detail") or "Requisição inválida.")
    r.raise_for_status()
    return r.json()



# Dados base

@st.cache_data(ttl=10)
def load_clinicas() -> list[dict]:
    return api_get("/api/clinicas")


@st.cache_data(ttl=10)
def load_profissionais(clinica_id: str) -> list[dict]:
    return api_get("/api/profissionais", params={"clinica_id": clinica_id})


@st.cache_data(ttl=10)
def load_procedimentos(clinica_id: str) -> list[dict]:
    return api_get("/api/procedimentos", params={"clinica_id": clinica_id})


def load_pacientes(clinica_id: str) -> list[dict]:
    return api_get("/api/pacientes", params={"clinica_id": clinica_id})



# Seletor de recorrencia

def recurrence_selector(min_date: date) -> dict:
    """Desenha os controles de recorrencia e devolve o bloco 'recorrencia' do payload."""
    ativo = st.toggle(
        "Agendamento Recorrente",
        value=False,
        key="rec_ativo",
        help="Repete automaticamente nos próximos dias",
    )
    if not ativo:
        return {"ativo": False}

    frequencia = st.selectbox(
        "Frequência",
        options=list(FREQUENCIAS),
        format_func=lambda f: f"{FREQUENCIAS[f][0]} - {FREQUENCIAS[f][1]}",
        key="rec_freq",
    )
    tipo_limite = st.radio(
        "Repetir até",
        options=["sessions", "date"],
        format_func=lambda t: "Número de sessões" if t == "sessions" else "Até uma data",
        horizontal=True,
        key="rec_limite",
    )

    rec = {"ativo": True, "frequencia": frequencia, "tipo_limite": tipo_limite}
    if tipo_limite == "sessions":
        rec["sessoes"] = int(st.number_input("Sessões", min_value=2, max_value=52, value=4, step=1, key="rec_sessoes"))
    else:
        fim = st.date_input("Data final", value=min_date + timedelta(days=28), min_value=min_date, key="rec_fim")
        rec["data_fim"] = fim.isoformat()
    return rec



# Sidebar

with st.sidebar:
    st.header("Clínica")
    try:
        clinicas = load_clinicas()
    except Exception as e:
        st.error(f"API indisponível ou erro: {e}")
        st.stop()

    if not clinicas:
        st.warning("Nenhuma clínica cadastrada. Rode `python -m clinica init`.")
        st.stop()

    clinica = st.selectbox("Clínica", options=clinicas, format_func=lambda c: c["nome"], key="clinica")
    st.divider()
    st.caption(f"API: {API_BASE}")



# UI

st.title("Agenda Clínica")

tab1, tab2, tab3 = st.tabs(["Agendamento", "Agenda do Profissional", "Pacientes"])



# TAB 1 - Agendamento

with tab1:
    st.subheader("Novo agendamento")

    try:
        profissionais = load_profissionais(clinica["id"])
        procedimentos = load_procedimentos(clinica["id"])
        pacientes = load_pacientes(clinica["id"])
    except Exception as e:
        st.error(f"Erro ao carregar cadastros: {e}")
        st.stop()

    colA, colB = st.columns(2)

    with colA:
        profissional = st.selectbox(
            "Profissional",
            options=profissionais,
            format_func=lambda p: f"{p['nome']} ({p['especialidade'] or '-'})",
            key="ag_prof",
        )
        paciente = st.selectbox(
            "Paciente",
            options=pacientes,
            format_func=lambda p: f"{p['nome']} | {p['telefone']}",
            key="ag_paciente",
        )
        procedimento = st.selectbox(
            "Procedimento",
            options=[None, *procedimentos],
            format_func=lambda p: "(padrão do profissional)" if p is None else f"{p['nome']} ({p['duracao_minutos']} min)",
            key="ag_proc",
        )
        dia = st.date_input("Data", value=date.today(), key="ag_data")
        hora = st.time_input("Horário", value=time(9, 0), key="ag_hora")
        observacoes = st.text_area("Observações (opcional)", height=80, key="ag_obs")

    with colB:
        recorrencia = recurrence_selector(dia)

        if recorrencia.get("ativo"):
            try:
                prev = api_post("/api/recorrencia/preview", {"data_inicio": dia.isoformat(), "recorrencia": recorrencia})
                st.info(f"Resumo: {prev['resumo']}")
                st.caption(f"{prev['total']} datas:")
                st.write(", ".join(datetime.fromisoformat(d).strftime("%d/%m/%Y") for d in prev["datas"]))
            except Exception as e:
                st.error(f"Erro na pré-visualização: {e}")

    st.divider()

    if st.button("Confirmar agendamento", key="ag_submit", disabled=not (pacientes and profissionais)):
        payload = {
            "paciente_id": paciente["id"],
            "profissional_id": profissional["id"],
            "procedimento_id": procedimento["id"] if procedimento else None,
            "data": dia.isoformat(),
            "hora_inicio": hora.strftime("%H:%M"),
            "observacoes": observacoes or None,
            "recorrencia": recorrencia,
        }
        try:
            res = api_post("/api/agendamentos", payload)
            if res.get("recorrente"):
                if res["falhas"]:
                    st.warning(f"{res['criados']} agendamentos criados, {res['falhas']} recusados.")
                else:
                    st.success(f"{res['criados']} agendamentos criados ({res['resumo']}).")
                for r in res["resultados"]:
                    d = datetime.fromisoformat(r["data"]).strftime("%d/%m/%Y")
                    st.write(f"- {'✅' if r['ok'] else '❌'} {d}: {r['mensagem']}")
            elif res.get("ok"):
                st.success(f"{res.get('mensagem')} (ID: {res.get('agendamento_id')})")
            else:
                st.error(res.get("mensagem") or "Erro no agendamento.")
        except Exception as e:
            st.error(str(e))



# TAB 2 - Agenda do profissional

with tab2:
    st.subheader("Agenda do dia")

    profissionais = load_profissionais(clinica["id"])
    prof_agenda = st.selectbox(
        "Profissional",
        options=profissionais,
        format_func=lambda p: f"{p['nome']} ({p['especialidade'] or '-'})",
        key="agenda_prof",
    )
    dia_agenda = st.date_input("Dia", value=date.today(), key="agenda_dia")

    if prof_agenda:
        try:
            itens = api_get("/api/agenda", params={"profissional_id": prof_agenda["id"], "dia": dia_agenda.isoformat()})
            if not itens:
                st.info("Nenhum agendamento para este dia.")
            else:
                for a in itens:
                    c1, c2 = st.columns([5, 1])
                    c1.write(
                        f"**{a['inicio']} - {a['fim']}** | {a['paciente']} | "
                        f"{a['procedimento'] or '-'} | Status: {a['status']}"
                    )
                    if c2.button("Cancelar", key=f"cancel_{a['id']}"):
                        try:
                            api_post(f"/api/agendamentos/{a['id']}/cancelar", {"motivo": "Cancelado pela recepção"})
                            st.rerun()
                        except Exception as e:
                            st.error(str(e))
        except Exception as e:
            st.error(f"Erro na agenda: {e}")



# TAB 3 - Pacientes

with tab3:
    st.subheader("Pacientes")

    with st.expander("Cadastrar paciente"):
        nome = st.text_input("Nome", key="pac_nome")
        c1, c2 = st.columns(2)
        tel = c1.text_input("Telefone", key="pac_tel")
        cpf = c2.text_input("CPF (opcional)", key="pac_cpf")
        email = st.text_input("Email (opcional)", key="pac_email")

        if st.button("Cadastrar", key="pac_submit"):
            try:
                res = api_post(
                    "/api/pacientes",
                    {
                        "clinica_id": clinica["id"],
                        "nome": nome,
                        "telefone": tel,
                        "email": email.strip() or None,
                        "cpf": cpf.strip() or None,
                    },
                )
                st.success(f"Paciente cadastrado: {res.get('paciente_id')}")
            except Exception as e:
                st.error(str(e))

    st.divider()
    try:
        pacientes = load_pacientes(clinica["id"])
        if not pacientes:
            st.info("Nenhum paciente cadastrado.")
        else:
            for p in pacientes:
                st.write(f"- {p['nome']} | {p['telefone']} | {p.get('email') or '-'}")
    except Exception as e:
        st.error(f"Erro ao carregar pacientes: {e}")
