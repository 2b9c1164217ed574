"""Operator entry point for the royalty ledger"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from fhe_royalties.config import settings
from fhe_royalties.db import db
from fhe_royalties.errors import RoyaltyError
from fhe_royalties.royalty import RoyaltyService
from fhe_royalties.services.oracle import LocalDecryptionOracle

logger = logging.getLogger(__name__)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='fhe_royalties', description='Encrypted royalty ledger administration')
    parser.add_argument('--database-url', default=None, help='Overrides the DATABASE_URL setting')
    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('init-db', help='Create tables and the reward pool')

    deposit = commands.add_parser('deposit', help='Add funds to the reward pool')
    deposit.add_argument('amount', type=int)

    commands.add_parser('sweep', help='Expire oracle requests past their timeout')

    royalty = commands.add_parser('royalty', help='Show the revealed royalty of a contribution')
    royalty.add_argument('contribution_id', type=int)

    commands.add_parser('summary', help='Show ledger counters')
    return parser

def build_service() -> RoyaltyService:
    oracle = LocalDecryptionOracle.from_settings(settings)
    return RoyaltyService(db, oracle, oracle.cipher, settings=settings)

def run(argv: Optional[List[str]] = None) -> None:
    """Run one administrative command."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=settings.LOG_LEVEL, format='%(message)s')

    try:
        db.init(args.database_url)
        service = build_service()

        if args.command == 'init-db':
            logger.info("Royalty ledger ready")
        elif args.command == 'deposit':
            balance = service.deposit_to_pool(args.amount)
            print(json.dumps({'pool_balance': balance}))
        elif args.command == 'sweep':
            expired = service.sweep_expired()
            print(json.dumps({'expired': [p.request_id for p in expired]}))
        elif args.command == 'royalty':
            print(json.dumps(service.get_revealed_royalty(args.contribution_id).model_dump(), indent=2))
        elif args.command == 'summary':
            print(json.dumps(service.summary().model_dump(), indent=2))

    except (RoyaltyError, ValueError) as e:
        logger.error(f"Error running {args.command}: {e}")
        sys.exit(1)
    finally:
        db.dispose()

if __name__ == "__main__":
    run()
