# backend/app/cli/__main__.py
from __future__ import annotations

import argparse

from app.cli.seed_demo import seed_demo
from app.logging_config import configure_logging


def main() -> None:
    p = argparse.ArgumentParser()
    p.add_argument("--admin-email", default="admin@demo.local")
    p.add_argument("--admin-name", default="Admin")
    p.add_argument("--inspector", action="append", default=[], metavar="EMAIL:NAME")
    p.add_argument("--no-catalog", action="store_true")
    args = p.parse_args()

    configure_logging()

    inspectors = [tuple(s.split(":", 1)) if ":" in s else (s, s.split("@")[0]) for s in args.inspector]
    out = seed_demo(
        admin_email=args.admin_email,
        admin_name=args.admin_name,
        inspectors=inspectors or (("inspector@demo.local", "Demo Inspector"),),
        with_catalog=(not args.no_catalog),
    )
    print(
        {
            "ok": True,
            "admin_id": out.admin_id,
            "inspector_ids": list(out.inspector_ids),
            "issues_created": out.issues_created,
        }
    )


if __name__ == "__main__":
    main()
