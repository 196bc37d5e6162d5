"""CLI entry point for the Dispute Resolution Workflow Engine."""

import argparse
import json
import shlex
import time
from pathlib import Path

from dispute_engine.config import settings
from dispute_engine.core import configure_engine
from dispute_engine.data.seed import seed_data, reset_data
from dispute_engine import tools
from dispute_engine.utils.session import set_current_user_id


HELP_TEXT = """
Commands:
  /help                                  - Show this help message
  /user <user_id>                        - Act as another user
  /disputes [status]                     - List your disputes
  /open <order_id> <type> <description>  - Open a dispute on an order
  /show <dispute_id>                     - Show a dispute with its history
  /msg <dispute_id> <text>               - Message the other party
  /propose <dispute_id> <amount> [note]  - Propose a refund
  /accept <proposal_id> [note]           - Accept a proposal
  /reject <proposal_id> [note]           - Reject a proposal
  /escalate <dispute_id>                 - Ask for arbitration
  /cancel <dispute_id> [reason]          - Withdraw your dispute
  /evidence <dispute_id> <type> <url> [description]
                                         - Attach evidence
  /take <dispute_id>                     - Take a case as arbitrator
  /decide <dispute_id> <result> <amount|-> <reason>
                                         - Submit an arbitration decision
  /executed <arbitration_id> [note]      - Mark a decision executed
  /sweep                                 - Run the timeout sweeps now
  /quit                                  - Exit
"""


def ensure_data_exists(data_dir: Path | None):
    """Ensure the sample orders exist, seeding if necessary."""
    orders_file = (data_dir or settings.data_dir) / "orders.json"
    if not orders_file.exists():
        print("Initializing sample orders...")
        seed_data(data_dir)
        print()


def _print(result: dict):
    print(json.dumps(result, indent=2, default=str))


def _rest(args: list[str], start: int) -> str | None:
    return " ".join(args[start:]) or None


def dispatch(command: str, args: list[str], engine) -> bool:
    """Run one REPL command. Returns False when the session should end."""
    if command in ("/quit", "/exit"):
        return False

    if command == "/help":
        print(HELP_TEXT)
    elif command == "/user":
        set_current_user_id(args[0])
        print(f"Now acting as {args[0]}")
    elif command == "/disputes":
        _print(tools.list_my_disputes.invoke({"status": args[0] if args else None}))
    elif command == "/open":
        _print(tools.submit_dispute.invoke({
            "order_id": args[0], "dispute_type": args[1].upper(), "description": _rest(args, 2) or "",
        }))
    elif command == "/show":
        _print(tools.get_dispute_detail.invoke({"dispute_id": args[0]}))
    elif command == "/msg":
        _print(tools.send_dispute_message.invoke({"dispute_id": args[0], "content": _rest(args, 1) or ""}))
    elif command == "/propose":
        _print(tools.propose_resolution.invoke({
            "dispute_id": args[0], "refund_amount": float(args[1]), "note": _rest(args, 2),
        }))
    elif command in ("/accept", "/reject"):
        _print(tools.respond_to_proposal.invoke({
            "proposal_id": args[0], "accept": command == "/accept", "note": _rest(args, 1),
        }))
    elif command == "/escalate":
        _print(tools.escalate_dispute.invoke({"dispute_id": args[0]}))
    elif command == "/cancel":
        _print(tools.cancel_dispute.invoke({"dispute_id": args[0], "reason": _rest(args, 1)}))
    elif command == "/evidence":
        _print(tools.upload_evidence.invoke({
            "dispute_id": args[0], "evidence_type": args[1].upper(), "file_url": args[2],
            "description": _rest(args, 3),
        }))
    elif command == "/take":
        _print(tools.take_arbitration_case.invoke({"dispute_id": args[0]}))
    elif command == "/decide":
        _print(tools.submit_arbitration.invoke({
            "dispute_id": args[0],
            "result": args[1],
            "refund_amount": None if args[2] == "-" else float(args[2]),
            "reason": _rest(args, 3) or "",
        }))
    elif command == "/executed":
        _print(tools.mark_arbitration_executed.invoke({"arbitration_id": args[0], "note": _rest(args, 1)}))
    elif command == "/sweep":
        _print(engine.scheduler.run_once())
    else:
        print(f"\nUnknown command: {command}")
        print("Type /help for available commands.")
    return True


def run_repl(user_id: str, engine):
    """Run the interactive REPL."""
    set_current_user_id(user_id)

    print("=" * 60)
    print("Dispute Resolution Workflow Engine")
    print("=" * 60)
    print(f"User: {user_id}")
    print(f"Data: {engine.storage.data_dir}")
    print(HELP_TEXT)
    print("-" * 60)

    while True:
        try:
            line = input("\n> ").strip()
            if not line:
                continue

            parts = shlex.split(line)
            command, args = parts[0].lower(), parts[1:]
            if not dispatch(command, args, engine):
                print("\nGoodbye!")
                break

        except (IndexError, ValueError) as e:
            print(f"\nCould not parse command: {e}")
            print("Type /help for usage.")
        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except EOFError:
            print("\n\nGoodbye!")
            break


def run_scheduler(engine):
    """Run the timeout sweeps in the background until interrupted."""
    engine.scheduler.start()
    print("Escalation scheduler running. Press Ctrl+C to stop.")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nStopping scheduler...")
    finally:
        engine.scheduler.stop()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Dispute Resolution Workflow Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                      # Start the REPL as the default user
  python main.py --user user_002      # Start as a specific user
  python main.py --sweep              # Run the timeout sweeps once and exit
  python main.py --scheduler          # Run the timeout sweeps periodically
  python main.py --reset              # Reset data to the sample orders
  python main.py --seed               # Seed sample orders and exit
        """,
    )

    parser.add_argument(
        "--user",
        type=str,
        default=settings.default_user_id,
        help=f"User ID for the session (default: {settings.default_user_id})",
    )

    parser.add_argument(
        "--reset",
        action="store_true",
        help="Reset all data to defaults (drops disputes and everything attached to them)",
    )

    parser.add_argument(
        "--seed",
        action="store_true",
        help="Seed sample orders and exit",
    )

    parser.add_argument(
        "--sweep",
        action="store_true",
        help="Run the negotiation and arbitration timeout sweeps once and exit",
    )

    parser.add_argument(
        "--scheduler",
        action="store_true",
        help="Run the timeout sweeps on their configured intervals",
    )

    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Custom data directory path",
    )

    args = parser.parse_args()

    # Handle data directory override
    if args.data_dir:
        settings.data_dir = args.data_dir

    # Handle reset
    if args.reset:
        print("Resetting all data to defaults...")
        reset_data(args.data_dir)
        print("Done!")
        return

    # Handle seed-only
    if args.seed:
        print("Seeding sample orders...")
        seed_data(args.data_dir)
        print("Done!")
        return

    ensure_data_exists(args.data_dir)
    engine = configure_engine(args.data_dir)

    if args.sweep:
        _print(engine.scheduler.run_once())
        return

    if args.scheduler:
        run_scheduler(engine)
        return

    run_repl(args.user, engine)


if __name__ == "__main__":
    main()
