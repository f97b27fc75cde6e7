"""Command line entry point for bus-to-route assignment reconciliation."""
import argparse
import json
import sys
from loguru import logger

from configurations.config import Config, ConfigurationError
from configurations.logging_config import configure_logging
from core.reconciler import build_reconciler


def print_summary(summary):
    print("\n📊 Assignment summary")
    for pass_summary in summary.passes:
        line = (f"   {pass_summary.name}: {pass_summary.assigned} assigned, "
                f"{pass_summary.skipped} skipped, {pass_summary.failed} failed")
        if pass_summary.error:
            line += f" ({pass_summary.error})"
        print(line)
    print(f"   total: {summary.assigned} assigned, {summary.skipped} skipped, {summary.failed} failed")
    if summary.timed_out:
        print("   ⏱️ deadline reached, run continued in the background")


def print_status(status):
    print("\n📊 Route status")
    print("=" * 60)
    print(f"✅ Routes with a bus: {status['with_bus']} of {status['total']}")
    print(f"⚠️  Routes without a bus: {status['without_bus']} of {status['total']}")
    for idx, route in enumerate(status["unbound_routes"], start=1):
        print(f"   {idx}. [{route['route_code']}] {(route['route_name'] or '')[:50]} ({route['status']})")


def print_services(results):
    print("\n🔍 Services status")
    print("=" * 60)
    for result in results:
        icon = "✅" if result["status"] == "OK" else "❌"
        detail = f" - {result['message']}" if result.get("message") else ""
        print(f"{icon} {result['service']}: {result['status']}{detail}")


def main():
    """Command line interface for the assignment reconciler."""
    parser = argparse.ArgumentParser(description="TransTrack bus-to-route assignment")
    parser.add_argument("--status", action="store_true", help="Show which routes have a bus")
    parser.add_argument("--check-services", action="store_true", help="Check collaborator health")
    parser.add_argument("--init-db", action="store_true", help="Create missing routes/buses tables")
    parser.add_argument("--deadline", type=float, default=None,
                        help="Stop waiting for the run after this many seconds")
    parser.add_argument("--json", action="store_true", help="Print the run summary as JSON")
    parser.add_argument("--api", action="store_true", help="Start FastAPI server instead")
    parser.add_argument("--port", type=int, default=Config.API_PORT,
                        help=f"Port for FastAPI server (default: {Config.API_PORT})")

    args = parser.parse_args()
    configure_logging()

    if args.api:
        # Start FastAPI server
        import uvicorn
        logger.info(f"🚀 Starting FastAPI server on port {args.port}...")
        try:
            uvicorn.run("api.app:create_app", factory=True, host=Config.API_HOST, port=args.port)
        except OSError as e:
            logger.error(f"❌ Server startup failed: {e}")
            sys.exit(1)
        return

    try:
        reconciler = build_reconciler()
    except ConfigurationError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    if args.init_db:
        reconciler.store.create_tables()

    if args.check_services:
        print_services(reconciler.check_services())
        return

    if args.status:
        print_status(reconciler.assignment_status())
        return

    if args.deadline:
        summary = reconciler.reconcile_with_deadline(args.deadline, trigger="cli")
    else:
        summary = reconciler.reconcile(trigger="cli")

    if args.json:
        print(json.dumps(summary.to_dict(), indent=2))
    else:
        print_summary(summary)


if __name__ == "__main__":
    main()
