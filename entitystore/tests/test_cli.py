import os

import pytest

import customerdb


def test_add_get_and_list_customer(capsys):
    customerdb.main(["add-customer", "--id", "arya", "--name", "Nafis", "--balance", "5", "--married"])
    assert "Customer added: arya" in capsys.readouterr().out

    customerdb.main(["get-customer", "--id", "arya"])
    out = capsys.readouterr().out
    assert "name: Nafis" in out
    assert "married: True" in out
    # NULL 字段不输出
    assert "email:" not in out

    customerdb.main(["list-customers"])
    assert "arya" in capsys.readouterr().out


def test_missing_customer_exits_nonzero():
    with pytest.raises(SystemExit) as ei:
        customerdb.main(["get-customer", "--id", "ghost"])
    assert ei.value.code == 2


def test_add_comments_and_report(capsys, tmp_path):
    customerdb.main(["add-comments", "--email", "fathirarya@gmail.com", "--count", "3", "--atomic"])
    out = capsys.readouterr().out
    assert out.count("Comment Id") == 3

    customerdb.main(["report", "--out", str(tmp_path)])
    files = sorted(os.listdir(tmp_path))
    assert any(f.startswith("customers_") for f in files)
    assert any(f.startswith("comments_") for f in files)


def test_login_command(capsys, cfg):
    from entitystore.services.user_svc import register_user
    from entitystore.logs import LogContext

    register_user("admin", "admin", LogContext("T", cfg=cfg), cfg)
    customerdb.main(["login", "--username", "admin", "--password", "admin"])
    assert "Login ok" in capsys.readouterr().out

    with pytest.raises(SystemExit) as ei:
        customerdb.main(["login", "--username", "admin'; #", "--password", "salah"])
    assert ei.value.code == 1


def test_invalid_customer_input_exits_nonzero_and_logs(cfg):
    from entitystore.logs import search_logs

    with pytest.raises(SystemExit) as ei:
        customerdb.main(["add-customer", "--id", "x", "--name", "X", "--birth-date", "not-a-date"])
    assert ei.value.code == 2

    total, items = search_logs(None, "CLI_ADD_CUSTOMER", None, None, 1, 10, cfg=cfg)
    assert total == 1
    assert items[0]["result"] == "ERROR"
    assert "birth_date" in items[0]["err_msg"]
