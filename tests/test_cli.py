"""Test CLI (preview e book)."""
from datetime import date

import pytest

from clinica.cli import build_parser, main
from clinica.services import agenda_diaria_flat


def test_preview_por_sessoes(capsys):
    main(["preview", "--data", "2025-01-01", "--frequencia", "weekly", "--sessoes", "3"])
    out = capsys.readouterr().out
    assert "Resumo: Toda semana, 3 sessões no total" in out
    assert "01/01/2025" in out
    assert "15/01/2025" in out
    assert "22/01/2025" not in out


def test_preview_sem_frequencia_mostra_so_inicio(capsys):
    main(["preview", "--data", "2025-01-01"])
    out = capsys.readouterr().out
    assert "Resumo" not in out
    assert out.strip().endswith("01/01/2025")


def test_sessoes_fora_do_intervalo_sao_limitadas(capsys):
    main(["preview", "--data", "2025-01-01", "--frequencia", "biweekly", "--sessoes", "1"])
    out = capsys.readouterr().out
    assert "2 sessões no total" in out


def test_book_recorrente_ate_data(capsys, paciente_id, profissional_id):
    main([
        "book",
        "--paciente-id", paciente_id,
        "--profissional-id", profissional_id,
        "--data", "2025-01-06",
        "--hora", "16:00",
        "--frequencia", "biweekly",
        "--ate", "2025-02-05",
    ])
    out = capsys.readouterr().out
    assert "3 criados, 0 recusados" in out
    assert len(agenda_diaria_flat(profissional_id, date(2025, 2, 3))) == 1


def test_parser_recusa_frequencia_desconhecida():
    parser = build_parser()
    with pytest.raises(SystemExit) as exc_info:
        parser.parse_args(["preview", "--data", "2025-01-01", "--frequencia", "daily"])
    assert exc_info.value.code == 2
