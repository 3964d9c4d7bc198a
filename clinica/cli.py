from __future__ import annotations

import argparse
from datetime import date, time

from .config import configurar_logging
from .models import TipoAgendamento
from .recorrencia import ConfigRecorrencia, Frequencia, TipoLimite, limitar_sessoes, resumo_recorrencia
from .seed import seed_base
from .services import (
    agenda_diaria_flat,
    agendar_consulta,
    agendar_recorrente,
    cancelar_agendamento,
    criar_paciente,
    init_db,
    lista_pacientes_flat,
    lista_procedimentos_flat,
    lista_profissionais_flat,
    previsualizar_recorrencia,
)


def _recorrencia(args: argparse.Namespace) -> ConfigRecorrencia:
    """--frequencia ativa a recorrencia; --ate escolhe limite por data, senao por sessoes."""
    if not args.frequencia:
        return ConfigRecorrencia(ativo=False)
    if args.ate:
        return ConfigRecorrencia(
            ativo=True,
            frequencia=Frequencia(args.frequencia),
            tipo_limite=TipoLimite.DATA,
            data_fim=args.ate,
        )
    return ConfigRecorrencia(
        ativo=True,
        frequencia=Frequencia(args.frequencia),
        tipo_limite=TipoLimite.SESSOES,
        sessoes=limitar_sessoes(args.sessoes),
    )


def cmd_init(args: argparse.Namespace) -> None:
    clinica_id = seed_base()
    print(f"DB inicializado e seed concluído. Clínica: {clinica_id}")


def cmd_list(args: argparse.Namespace) -> None:
    clinica_id = args.clinica_id or seed_base()
    if args.entity == "profissionais":
        for p in lista_profissionais_flat(clinica_id):
            print(f"{p['id']} | {p['nome']} | {p['especialidade'] or '-'} ({p['duracao_consulta']} min)")
    elif args.entity == "pacientes":
        for p in lista_pacientes_flat(clinica_id):
            print(f"{p['id']} | {p['nome']} | {p['telefone']} | {p['email'] or '-'}")
    elif args.entity == "procedimentos":
        for p in lista_procedimentos_flat(clinica_id):
            print(f"{p['id']} | {p['nome']} ({p['duracao_minutos']} min) | R$ {p['preco']}")


def cmd_add_patient(args: argparse.Namespace) -> None:
    clinica_id = args.clinica_id or seed_base()
    try:
        pid = criar_paciente(clinica_id, args.nome, args.telefone, args.email, args.cpf)
    except ValueError as e:
        raise SystemExit(f"Erro: {e}")
    print(f"Paciente criado: {pid}")


def cmd_preview(args: argparse.Namespace) -> None:
    config = _recorrencia(args)
    datas = previsualizar_recorrencia(date.fromisoformat(args.data), config)
    resumo = resumo_recorrencia(config)
    if resumo:
        print(f"Resumo: {resumo}")
    for i, d in enumerate(datas, start=1):
        print(f"{i:>2}. {d.strftime('%d/%m/%Y')}")


def cmd_book(args: argparse.Namespace) -> None:
    dia = date.fromisoformat(args.data)  # formato: 2026-01-14
    hora = time.fromisoformat(args.hora)  # formato: 10:30
    config = _recorrencia(args)

    if not config.ativo:
        resultado = agendar_consulta(
            paciente_id=args.paciente_id,
            profissional_id=args.profissional_id,
            dia=dia,
            hora_inicio=hora,
            procedimento_id=args.procedimento_id,
            tipo=TipoAgendamento(args.tipo),
            observacoes=args.observacoes,
        )
        print(resultado.mensagem)
        if resultado.agendamento_id:
            print(f"Agendamento ID: {resultado.agendamento_id}")
        return

    serie = agendar_recorrente(
        paciente_id=args.paciente_id,
        profissional_id=args.profissional_id,
        dia_inicio=dia,
        hora_inicio=hora,
        recorrencia=config,
        procedimento_id=args.procedimento_id,
        tipo=TipoAgendamento(args.tipo),
        observacoes=args.observacoes,
    )
    print(f"{serie.resumo}: {serie.criados} criados, {serie.falhas} recusados.")
    for r in serie.resultados:
        marca = "OK " if r.ok else "ERR"
        print(f"[{marca}] {r.data.strftime('%d/%m/%Y')} | {r.agendamento_id or '-'} | {r.mensagem}")


def cmd_agenda(args: argparse.Namespace) -> None:
    itens = agenda_diaria_flat(args.profissional_id, date.fromisoformat(args.dia))
    if not itens:
        print("Nenhum agendamento para este dia.")
        return
    for a in itens:
        print(f"{a['inicio']}-{a['fim']} | {a['paciente']} | {a['procedimento'] or '-'} | {a['status']}")


def cmd_cancel(args: argparse.Namespace) -> None:
    ok = cancelar_agendamento(args.agendamento_id, motivo=args.motivo)
    print("Cancelado." if ok else "Não encontrado / já cancelado.")


def _add_recorrencia_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--frequencia", choices=[f.value for f in Frequencia], default=None, help="Ativa a recorrência")
    p.add_argument("--sessoes", type=int, default=4, help="Total de sessões (2-52)")
    p.add_argument("--ate", default=None, help="Data final inclusiva, ex: 2026-03-31 (substitui --sessoes)")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="agenda_clinica", description="CLI Agenda Clínica")
    sub = p.add_subparsers(required=True)

    p_init = sub.add_parser("init", help="Cria DB e carrega seed")
    p_init.set_defaults(func=cmd_init)

    p_list = sub.add_parser("list", help="Lista entidades")
    p_list.add_argument("entity", choices=["profissionais", "pacientes", "procedimentos"])
    p_list.add_argument("--clinica-id", default=None, help="Padrão: clínica do seed")
    p_list.set_defaults(func=cmd_list)

    p_addp = sub.add_parser("add-patient", help="Cadastra paciente")
    p_addp.add_argument("--clinica-id", default=None, help="Padrão: clínica do seed")
    p_addp.add_argument("--nome", required=True)
    p_addp.add_argument("--telefone", required=True)
    p_addp.add_argument("--email", default=None)
    p_addp.add_argument("--cpf", default=None)
    p_addp.set_defaults(func=cmd_add_patient)

    p_prev = sub.add_parser("preview", help="Mostra as datas de uma recorrência sem gravar")
    p_prev.add_argument("--data", required=True, help="Data inicial ISO, ex: 2026-01-14")
    _add_recorrencia_args(p_prev)
    p_prev.set_defaults(func=cmd_preview)

    p_book = sub.add_parser("book", help="Agenda consulta (opcionalmente recorrente)")
    p_book.add_argument("--paciente-id", required=True)
    p_book.add_argument("--profissional-id", required=True)
    p_book.add_argument("--procedimento-id", default=None)
    p_book.add_argument("--data", required=True, help="Data ISO, ex: 2026-01-14")
    p_book.add_argument("--hora", required=True, help="Horário, ex: 10:30")
    p_book.add_argument("--tipo", choices=[t.value for t in TipoAgendamento], default=TipoAgendamento.FIRST_VISIT.value)
    p_book.add_argument("--observacoes", default=None)
    _add_recorrencia_args(p_book)
    p_book.set_defaults(func=cmd_book)

    p_agenda = sub.add_parser("agenda", help="Agenda do dia de um profissional")
    p_agenda.add_argument("--profissional-id", required=True)
    p_agenda.add_argument("--dia", required=True, help="Data ISO, ex: 2026-01-14")
    p_agenda.set_defaults(func=cmd_agenda)

    p_cancel = sub.add_parser("cancel", help="Cancela agendamento")
    p_cancel.add_argument("--agendamento-id", required=True)
    p_cancel.add_argument("--motivo", default=None)
    p_cancel.set_defaults(func=cmd_cancel)

    return p


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configurar_logging()
    init_db()  # garante as tabelas
    args.func(args)


if __name__ == "__main__":
    main()
