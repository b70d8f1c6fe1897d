"""Storefront Checkout management CLI.

Usage:
    python src/manage.py setup-db             # Create all tables
    python src/manage.py drop-db              # Drop all tables
    python src/manage.py reconcile-payments   # Sweep orders stuck awaiting payment
"""

import argparse
import sys


def setup_databases():
    """Create database schemas for the checkout domain."""
    from checkout.domain import checkout
    from checkout.utils.db import setup_db

    print("Initializing checkout domain...")
    checkout.init()
    print("Creating checkout database schema...")
    created = setup_db(checkout)
    if not created:
        print("  No relational provider configured; nothing to create.")
    for name in created:
        print(f"  {name} schema ready.")

    print("Done.")


def drop_databases():
    """Drop database schemas for the checkout domain."""
    from checkout.domain import checkout
    from checkout.utils.db import drop_db

    print("Initializing checkout domain...")
    checkout.init()
    print("Dropping checkout database schema...")
    for name in drop_db(checkout):
        print(f"  {name} schema dropped.")

    print("Done.")


def reconcile_payments(older_than_minutes):
    """Run the stale payment sweep once."""
    from checkout.domain import checkout
    from checkout.payment.sweeper import ReconcileStalePayments

    checkout.init()
    with checkout.domain_context():
        summary = checkout.process(
            ReconcileStalePayments(older_than_minutes=older_than_minutes),
            asynchronous=False,
        )

    print(
        "Checked {checked}: {paid} paid, {failed} failed, {closed} closed, {errors} errors".format(**summary)
    )


def main():
    parser = argparse.ArgumentParser(description="Storefront Checkout management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    reconcile_parser = subparsers.add_parser("reconcile-payments", help="Reconcile stale online payments")
    reconcile_parser.add_argument(
        "--older-than-minutes",
        type=int,
        default=15,
        help="Only orders whose payment session is at least this old (default: 15)",
    )

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    elif args.command == "reconcile-payments":
        reconcile_payments(args.older_than_minutes)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
