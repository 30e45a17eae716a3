"""Test Scripts 동작과 회귀 시나리오를 검증하는 자동화 테스트입니다."""

import importlib.util
from pathlib import Path

import pytest
from sqlalchemy import inspect

from attendance_service.config import settings
from tests.conftest import engine

SCRIPTS_DIR = Path(__file__).resolve().parents[1] / "scripts"


def _load_script(name: str):
    spec = importlib.util.spec_from_file_location(f"scripts_{name}", SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_init_db_creates_attendance_tables(capsys):
    init_db = _load_script("init_db")
    names = init_db.init_db(bind=engine)

    assert {"time_attendance", "time_attendance_raw_event", "attendance_ingest_config"} <= set(names)
    assert {"time_attendance", "time_attendance_raw_event"} <= set(inspect(engine).get_table_names())
    out = capsys.readouterr().out
    assert "time_attendance_raw_event" in out


def test_repair_script_rejects_wrong_token(monkeypatch, capsys):
    repair_attendance = _load_script("repair_attendance")
    monkeypatch.setattr("sys.argv", ["repair_attendance.py", "--confirm", "nope"])
    with pytest.raises(SystemExit) as exc_info:
        repair_attendance.main()
    assert exc_info.value.code == 2
    assert "nothing was changed" in capsys.readouterr().out
    assert settings.REPAIR_CONFIRM_TOKEN != "nope"
