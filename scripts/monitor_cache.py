#!/usr/bin/env python3
"""
Redis Cache Monitor - Stats, expiring keys, purging and memory policy

Operational companion to the cache service:
- Connectivity check
- Memory and key statistics
- Keys about to expire
- Demo entries with assorted TTLs
- Manual purge of transient keys
- Memory limit and eviction policy
- Live monitoring loop

@.architecture
Incoming: Command line --- {CLI args, REDIS_URL / config/cache.toml via get_settings}
Processing: cmd_check(), cmd_stats(), cmd_demo(), cmd_purge(), cmd_configure(), cmd_monitor() --- {5 jobs: connectivity_checking, stats_reporting, demo_seeding, purging, memory_configuration}
Outgoing: Redis (via CacheManager), stdout --- {store commands, human-readable report, exit code}
"""

import argparse
import asyncio
import sys
import time
from typing import Awaitable, Callable, Dict

from config.settings import get_settings
from core.cache.errors import CacheError, StoreUnavailable
from core.cache.manager import CacheManager
from data.store.redis import RedisKeyValueStore


# =============================================================================
# Terminal Colors
# =============================================================================

class Colors:
    """ANSI color codes."""
    RED = '\033[0;31m'
    GREEN = '\033[0;32m'
    YELLOW = '\033[1;33m'
    BLUE = '\033[0;34m'
    RESET = '\033[0m'


def log_info(message: str) -> None:
    print(f"{Colors.GREEN}[INFO]{Colors.RESET} {message}")


def log_warn(message: str) -> None:
    print(f"{Colors.YELLOW}[WARN]{Colors.RESET} {message}")


def log_error(message: str) -> None:
    print(f"{Colors.RED}[ERROR]{Colors.RESET} {message}")


def heading(title: str) -> None:
    print(f"{Colors.BLUE}{title}{Colors.RESET}")


# =============================================================================
# Commands
# =============================================================================

DEMO_ENTRIES = [
    ("cache:demo:short", {"data": "short-lived"}, 10),
    ("cache:demo:medium", {"data": "medium-lived"}, 30),
    ("cache:demo:long", {"data": "long-lived"}, 60),
    ("cache:temp:demo1", {"temp": "data1"}, 15),
    ("cache:session:user123", {"userId": 123, "role": "admin"}, 45),
]


async def cmd_check(manager: CacheManager, args: argparse.Namespace) -> None:
    health = await manager.check_health()
    if not health['healthy']:
        raise StoreUnavailable(health['message'])
    log_info(f"Redis reachable at {manager.settings.redis.url} ({health['latency_ms']}ms)")


async def print_stats(manager: CacheManager, threshold: int) -> None:
    stats = await manager.get_cache_stats()
    memory = stats.get("memory", {})
    max_memory = await manager.store.config_get("maxmemory")

    heading("Memory Information:")
    print(f"  Memory Usage: {memory.get('used_memory_human', memory.get('error', 'unknown'))}")
    limit = max_memory.get("maxmemory", "0")
    print(f"  Max Memory: {limit if limit != '0' else 'No limit set'}")
    print()

    heading("Key Statistics:")
    for name, pattern in (("Cache", "cache:*"), ("Session", "cache:session:*"), ("Temporary", "*temp*")):
        print(f"  {name} Keys: {len(await manager.store.keys(pattern))}")
    for db, info in stats.get("keyspace", {}).items():
        print(f"  {db}: {info}")
    print()

    heading(f"Keys expiring in next {threshold} seconds:")
    for entry in await manager.get_expiring_keys("*", threshold):
        print(f"  - {entry['key']} (TTL: {entry['ttl']}s)")


async def cmd_stats(manager: CacheManager, args: argparse.Namespace) -> None:
    await print_stats(manager, args.threshold)


async def cmd_demo(manager: CacheManager, args: argparse.Namespace) -> None:
    log_info("Creating demo cache entries with different TTL values...")
    await manager.set_batch(DEMO_ENTRIES)
    await manager.set("cache:demo:permanent", {"data": "no-expiration"})
    await manager.set("cache:temp:orphan", {"temp": "no-ttl"})
    log_info(f"Created {len(DEMO_ENTRIES) + 2} demo entries")


async def cmd_purge(manager: CacheManager, args: argparse.Namespace) -> None:
    log_info(f"Purging expiry-less keys matching {args.pattern}...")
    deleted = await manager.cleanup(args.pattern)
    log_info(f"Purge completed: {deleted} keys deleted")


async def cmd_configure(manager: CacheManager, args: argparse.Namespace) -> None:
    applied = await manager.configure_memory_management(args.max_memory, args.policy, args.hz)
    log_info("Configuration applied:")
    for parameter, value in applied.items():
        print(f"  - {parameter}: {value}")


async def cmd_monitor(manager: CacheManager, args: argparse.Namespace) -> None:
    log_info(f"Monitoring for {args.duration}s (Ctrl+C to stop early)")
    start = time.time()
    while time.time() - start < args.duration:
        elapsed = int(time.time() - start)
        print(f"\n{Colors.GREEN}=== Redis Cache Monitor ==={Colors.RESET} ({elapsed}s/{args.duration}s)")
        await print_stats(manager, 30)
        await asyncio.sleep(args.interval)
    log_info("Monitoring completed")


COMMANDS: Dict[str, Callable[[CacheManager, argparse.Namespace], Awaitable[None]]] = {
    "check": cmd_check,
    "stats": cmd_stats,
    "demo": cmd_demo,
    "purge": cmd_purge,
    "configure": cmd_configure,
    "monitor": cmd_monitor,
}


async def run(args: argparse.Namespace) -> None:
    settings = get_settings()
    if args.redis_url:
        settings = settings.model_copy(update={"redis": settings.redis.model_copy(update={"url": args.redis_url})})

    manager = CacheManager(RedisKeyValueStore.from_settings(settings.redis), settings)
    await manager.connect()
    try:
        await COMMANDS[args.command](manager, args)
    finally:
        await manager.disconnect()


# =============================================================================
# CLI Interface
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Redis cache monitoring and purging",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python monitor_cache.py demo                         # Create test data
  python monitor_cache.py stats --threshold 30
  python monitor_cache.py monitor --duration 120 --interval 2
  python monitor_cache.py configure 128mb volatile-lru
        """
    )
    parser.add_argument('--redis-url', help='Override the configured Redis URL')

    subparsers = parser.add_subparsers(dest='command', required=True)
    subparsers.add_parser('check', help='Check Redis connectivity')

    stats = subparsers.add_parser('stats', help='Show current cache statistics')
    stats.add_argument('--threshold', type=int, default=60, help='Expiring-key window in seconds')

    subparsers.add_parser('demo', help='Create demo cache entries with TTL')

    purge = subparsers.add_parser('purge', help='Purge expiry-less transient keys')
    purge.add_argument('pattern', nargs='?', default='cache:temp:*')

    configure = subparsers.add_parser('configure', help='Configure memory management')
    configure.add_argument('max_memory', nargs='?', default='64mb')
    configure.add_argument('policy', nargs='?', default='allkeys-lru')
    configure.add_argument('--hz', type=int, default=100)

    monitor = subparsers.add_parser('monitor', help='Real-time monitoring')
    monitor.add_argument('--duration', type=int, default=60)
    monitor.add_argument('--interval', type=float, default=3.0)

    return parser


def main():
    args = build_parser().parse_args()
    try:
        asyncio.run(run(args))
    except CacheError as e:
        log_error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        log_warn("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
