from __future__ import annotations

import pytest

from zendesk_canny import run_migrate


def test_run_migrate_help_does_not_crash(capsys):
    """
    Smoke test: the CLI builds its parser and prints help without touching
    Zendesk or Canny.
    """
    with pytest.raises(SystemExit) as excinfo:
        run_migrate.main(["--help"])

    assert excinfo.value.code == 0
    assert "zendesk_topic_id:canny_board_id" in capsys.readouterr().out
