"""
Backend Agenda Clínica.

Estrutura:
- config.py      : variaveis de ambiente (.env) e logging
- db.py          : engine e sessoes SQLAlchemy
- models.py      : modelos ORM e enums
- recorrencia.py : calculo das datas de agendamentos recorrentes
- services.py    : logica de dominio (cadastros, agendamento, recorrencia, agenda)
- seed.py        : dados iniciais (clinica, profissionais, procedimentos)
- api_main.py    : API REST (FastAPI)
- cli.py         : CLI
"""
