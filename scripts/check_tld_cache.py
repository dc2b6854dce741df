#!/usr/bin/env python3
"""
Inspect or manage the TLD list cached in the Redis Cluster.

Usage:
    python scripts/check_tld_cache.py                       # show cache info
    python scripts/check_tld_cache.py --refresh             # re-fetch from IANA
    python scripts/check_tld_cache.py --clear               # delete cached list
    python scripts/check_tld_cache.py user@example.com ...  # check addresses' TLDs

Reads the same environment variables as the backend (REDIS_CLUSTER_NODES, ...).
"""
import argparse
import json
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'backend'))

from tld_validator import TldValidator  # noqa: E402

DEFAULT_SAMPLES = ['user@example.com', 'user@example.org', 'user@example.invalidtld123']


def main():
    parser = argparse.ArgumentParser(description="Inspect or manage the cached TLD list")
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--refresh', action='store_true', help="re-fetch the list from IANA")
    group.add_argument('--clear', action='store_true', help="delete the cached list")
    parser.add_argument('emails', nargs='*', help="addresses to check (default: samples)")
    args = parser.parse_args()

    validator = TldValidator()
    print(f"Loaded {validator.tld_count} TLDs from {validator.source.value}")

    if args.clear:
        if validator.clear_cache():
            print("[OK] TLD cache cleared")
        else:
            print("[INFO] Nothing to clear")
        return

    if args.refresh:
        if not validator.force_refresh_cache():
            print("[FAIL] Could not fetch the TLD list from IANA")
            sys.exit(1)
        print(f"[OK] Refreshed: {validator.tld_count} TLDs")

    print(json.dumps(validator.get_cache_info(), indent=2))

    print("-" * 50)
    for email in args.emails or DEFAULT_SAMPLES:
        result = validator.validate(email)
        marker = 'OK' if result.is_valid else 'INVALID'
        reason = f" ({result.reason})" if result.reason else ""
        print(f"[{marker}] {email}: {result.status.value}{reason}")


if __name__ == '__main__':
    main()
