#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Customer store CLI (SQLite)

Commands:
  init                Create tables from schema.sql in the configured DB
  add-customer        Insert one customer
  get-customer        Print one customer by id
  list-customers      Print all customers
  add-comments        Insert a batch of comments (one statement, many executions)
  login               Check a username/password pair
  report              Export customers and comments to CSV and print to console

Notes:
- The DB path comes from --config (config.yaml) or the CUSTDB_DB_PATH env var.
- Every value given on the command line is passed to SQLite as a bound parameter.
"""

import argparse
import datetime as dt
import logging
import os
import sys

import pandas as pd
from pydantic import ValidationError

from entitystore.config import load_config
from entitystore.db import ensure_schema, get_conn
from entitystore.errors import StoreError
from entitystore.logs import LogContext
from entitystore.repository import CommentStore, CustomerStore
from entitystore.services.comment_svc import add_comments, add_comments_atomic
from entitystore.services.customer_svc import create_customer, get_customer, list_customers
from entitystore.services.user_svc import login

logger = logging.getLogger("customerdb")


# ---------------- Commands ----------------

def cmd_init(args):
    cfg = load_config(args.config)
    with get_conn(cfg) as conn:
        ensure_schema(conn)
    print("DB initialized:", cfg.db_path)


def cmd_add_customer(args):
    cfg = load_config(args.config)
    data = {
        "id": args.id,
        "name": args.name,
        "email": args.email,
        "balance": args.balance,
        "rating": args.rating,
        "birth_date": args.birth_date,
        "married": args.married,
    }
    log = LogContext("CLI_ADD_CUSTOMER", cfg=cfg)
    log.set_payload(data)
    try:
        out = create_customer(data, log, cfg)
    except (StoreError, ValidationError) as e:
        log.write("ERROR", str(e))
        raise
    log.write("OK")
    print("Customer added:", out["id"])


def cmd_get_customer(args):
    cfg = load_config(args.config)
    c = get_customer(args.id, cfg)
    for k, v in c.items():
        # NULL 字段不打印
        if v is not None:
            print(f"{k}: {v}")


def cmd_list_customers(args):
    cfg = load_config(args.config)
    df = pd.DataFrame(list_customers(cfg))
    pd.set_option("display.width", 160)
    print(df if not df.empty else "(empty)")


def cmd_add_comments(args):
    cfg = load_config(args.config)
    rows = [{"email": args.email, "comment": f"{args.prefix}{i}"} for i in range(args.count)]
    log = LogContext("CLI_ADD_COMMENTS", cfg=cfg)
    log.set_payload({"email": args.email, "count": args.count, "atomic": args.atomic})
    try:
        ids = add_comments_atomic(rows, log, cfg) if args.atomic else add_comments(rows, log, cfg)
    except StoreError as e:
        log.write("ERROR", str(e))
        raise
    log.write("OK")
    for i in ids:
        print("Comment Id", i)


def cmd_login(args):
    cfg = load_config(args.config)
    if login(args.username, args.password, cfg):
        print("Login ok:", args.username)
    else:
        print("Login failed")
        sys.exit(1)


def cmd_report(args):
    cfg = load_config(args.config)
    with get_conn(cfg) as conn:
        with CustomerStore(conn).find_all(order_by_key=True) as rows:
            cust = pd.DataFrame([r.model_dump() for r in rows])
        with CommentStore(conn).find_all(order_by_key=True) as rows:
            com = pd.DataFrame([r.model_dump() for r in rows])

    pd.set_option("display.max_rows", 200)
    pd.set_option("display.width", 160)

    print("\n=== Customers ===")
    print(cust if not cust.empty else "(empty)")
    print("\n=== Comments ===")
    if not com.empty:
        print(com.groupby("email").size().rename("comments"))
    else:
        print("(none)")

    out_dir = args.out or os.path.join(os.path.dirname(os.path.abspath(__file__)), "exports")
    os.makedirs(out_dir, exist_ok=True)
    stamp = dt.datetime.now().strftime("%Y%m%d")
    cust.to_csv(os.path.join(out_dir, f"customers_{stamp}.csv"), index=False, encoding="utf-8-sig")
    com.to_csv(os.path.join(out_dir, f"comments_{stamp}.csv"), index=False, encoding="utf-8-sig")
    print("\nCSV exported to", out_dir)


# ---------------- Entry ----------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Customer store (SQLite)")
    parser.add_argument("--config", default=None, help="path to config.yaml")
    sub = parser.add_subparsers()

    p_init = sub.add_parser("init", help="create tables")
    p_init.set_defaults(func=cmd_init)

    p_add = sub.add_parser("add-customer", help="insert a customer")
    p_add.add_argument("--id", required=True)
    p_add.add_argument("--name", required=True)
    p_add.add_argument("--email", required=False)
    p_add.add_argument("--balance", type=int, default=0)
    p_add.add_argument("--rating", type=float, default=0.0)
    p_add.add_argument("--birth-date", dest="birth_date", required=False, help="YYYY-MM-DD")
    p_add.add_argument("--married", action="store_true")
    p_add.set_defaults(func=cmd_add_customer)

    p_get = sub.add_parser("get-customer", help="show one customer")
    p_get.add_argument("--id", required=True)
    p_get.set_defaults(func=cmd_get_customer)

    p_list = sub.add_parser("list-customers", help="show all customers")
    p_list.set_defaults(func=cmd_list_customers)

    p_com = sub.add_parser("add-comments", help="insert a batch of comments")
    p_com.add_argument("--email", required=True)
    p_com.add_argument("--count", type=int, default=10)
    p_com.add_argument("--prefix", default="Comment ")
    p_com.add_argument("--atomic", action="store_true", help="all-or-nothing in one transaction")
    p_com.set_defaults(func=cmd_add_comments)

    p_login = sub.add_parser("login", help="check credentials")
    p_login.add_argument("--username", required=True)
    p_login.add_argument("--password", required=True)
    p_login.set_defaults(func=cmd_login)

    p_rep = sub.add_parser("report", help="export customers and comments")
    p_rep.add_argument("--out", required=False, help="output directory (default ./exports)")
    p_rep.set_defaults(func=cmd_report)
    return parser


def main(argv=None):
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    try:
        args.func(args)
    except (StoreError, ValidationError) as e:
        logger.error(f"{args.func.__name__} failed: {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
