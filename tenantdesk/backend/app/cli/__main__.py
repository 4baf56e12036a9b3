# backend/app/cli/__main__.py
from __future__ import annotations

import argparse
import json

from app.cli.seed_demo import seed_demo
from app.logging_config import configure_logging
from app.services.jobs import JOBS, run_job_standalone


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m app.cli")
    sub = p.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed", help="seed a demo client with buildings, tenants and plans")
    seed.add_argument("--client-slug", default="demo")
    seed.add_argument("--client-name", default="Demo Property Management")
    seed.add_argument("--admin-email", default="admin@demo.local")
    seed.add_argument("--manager-email", default="manager@demo.local")
    seed.add_argument("--password", default="demo-password")

    job = sub.add_parser("run-job", help="run one cron job once, without Celery")
    job.add_argument("name", choices=sorted(JOBS))

    args = p.parse_args()
    configure_logging()

    if args.command == "seed":
        out = seed_demo(
            client_slug=args.client_slug,
            client_name=args.client_name,
            admin_email=args.admin_email,
            manager_email=args.manager_email,
            password=args.password,
        )
        print(
            {
                "ok": True,
                "client_slug": out.client_slug,
                "manager_email": out.manager_email,
                "building_id": out.building_id,
                "tenants": out.tenant_count,
            }
        )
        return

    print(json.dumps(run_job_standalone(args.name), default=str, indent=2))


if __name__ == "__main__":
    main()
