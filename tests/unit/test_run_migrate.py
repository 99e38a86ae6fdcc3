from __future__ import annotations

import json

import pytest

from zendesk_canny import run_migrate


@pytest.fixture
def wired(monkeypatch, source, destination):
    """Point the CLI at the in-memory Zendesk and Canny."""
    monkeypatch.setattr(run_migrate, "ZendeskClient", lambda cfg: source)
    monkeypatch.setattr(run_migrate, "CannyClient", lambda cfg: destination)
    return source, destination


def _argv(state_path, *extra):
    return [
        "--z-url", "https://acme.zendesk.com",
        "--z-username", "me",
        "--z-password", "secret",
        "--c-key", "canny-key",
        "--state", str(state_path),
        *extra,
    ]


def test_main_migrates_and_writes_state(tmp_path, wired, post_dict):
    source, destination = wired
    source.add_topic("115-faq", [post_dict(1, author_id=10)])
    source.add_user(10)
    state = tmp_path / "state.json"

    code = run_migrate.main(_argv(state, "--parallel", "2", "115-faq:board1"))

    assert code == 0
    assert [p.board_id for p in destination.posts] == ["board1"]
    assert json.loads(state.read_text(encoding="utf-8")) == {"115-faq": {"post_1": "cp1"}}


def test_main_passes_default_user_and_agents(tmp_path, wired, post_dict):
    source, destination = wired
    source.add_topic("t", [post_dict(1, author_id=404), post_dict(2, author_id=7)])
    source.add_user(7)

    code = run_migrate.main(
        _argv(tmp_path / "state.json", "--default-user", "dflt", "--agent", "7:admin", "t:b")
    )

    assert code == 0
    assert [p.author_id for p in destination.posts] == ["dflt", "admin"]
    assert destination.users == []


def test_ctrl_c_saves_state_and_exits_130(tmp_path, wired, post_dict):
    source, destination = wired
    source.add_topic("t", [post_dict(1, author_id=10), post_dict(2, author_id=10)])
    source.add_user(10)
    destination.fail_on["post"] = 2
    destination.fail_with["post"] = KeyboardInterrupt()
    state = tmp_path / "state.json"

    assert run_migrate.main(_argv(state, "t:b")) == 130
    assert json.loads(state.read_text(encoding="utf-8")) == {"t": {"post_1": "cp1"}}


def test_unexpected_error_saves_state_and_exits_1(tmp_path, wired, post_dict):
    source, destination = wired
    source.add_topic("t", [post_dict(1, author_id=10), post_dict(2, author_id=10)])
    source.add_user(10)
    destination.fail_on["post"] = 2
    destination.fail_with["post"] = RuntimeError("unexpected")
    state = tmp_path / "state.json"

    assert run_migrate.main(_argv(state, "t:b")) == 1
    assert json.loads(state.read_text(encoding="utf-8")) == {"t": {"post_1": "cp1"}}


def test_invalid_topic_pair_exits_with_usage_error(tmp_path, wired):
    assert run_migrate.main(_argv(tmp_path / "state.json", "not-a-pair")) == 2


def test_invalid_parallelism_exits_with_usage_error(tmp_path, wired):
    assert run_migrate.main(_argv(tmp_path / "state.json", "--parallel", "0", "t:b")) == 2


def test_missing_credentials_is_an_argparse_error(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        run_migrate.main(["t:b"])
    assert excinfo.value.code == 2


def test_corrupt_state_file_aborts_before_migrating(tmp_path, wired, post_dict):
    source, destination = wired
    source.add_topic("t", [post_dict(1)])
    state = tmp_path / "state.json"
    state.write_text("{broken", encoding="utf-8")

    assert run_migrate.main(_argv(state, "t:b")) == 1
    assert destination.posts == []
    assert state.read_text(encoding="utf-8") == "{broken"


def test_mask_sensitive_hides_secrets():
    args = run_migrate.build_parser().parse_args(_argv("state.json", "t:b"))

    masked = run_migrate.mask_sensitive(args)

    assert masked["z_password"] == "****"
    assert masked["c_key"] == "****"
    assert masked["z_username"] == "me"
