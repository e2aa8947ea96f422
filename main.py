#!/usr/bin/env python3
"""SiteBuilder - AI website generation from an onboarding description.

Usage:
    python main.py analyze --description "Family pizza place" --type restaurant
    python main.py generate --description "..." --type business --features services contact
    python main.py chat --session user_123_abc --message "make the header background dark"
    python main.py watch --session user_123_abc --expected 4
    python main.py list-components
"""

import argparse
import asyncio
import logging
import sys

from client.poller import ERROR, Poller
from client.transport import HttpTransport
from config.components import COMPONENTS
from core.orchestrator import Orchestrator
from core.state import COLOR_SCHEMES, GenerationRequest
from utils.llm import LLMClient


def _request_from_args(args):
    return GenerationRequest.from_payload({
        "businessDescription": args.description,
        "websiteType": args.type,
        "selectedFeatures": args.features or [],
        "colorScheme": args.color_scheme,
    })


def _add_request_args(parser, required=True):
    parser.add_argument("--description", required=required, default="",
                        help="Business description")
    parser.add_argument("--type", default="", help="Website type, e.g. restaurant, portfolio")
    parser.add_argument("--features", nargs="*", help="Requested features (about, services, ...)")
    parser.add_argument("--color-scheme", choices=COLOR_SCHEMES, default="light")


def cmd_analyze(args):
    """Plan only: show which components would be generated."""
    orchestrator = Orchestrator(LLMClient())
    plan = orchestrator.plan(_request_from_args(args))
    print(f"Source:     {plan.source}")
    print(f"Components: {', '.join(plan.components)}")
    print(f"Expected:   {plan.expected_count}")
    if plan.reasoning:
        print(f"\nReasoning:\n  {plan.reasoning}")


def cmd_generate(args):
    """Plan and generate synchronously, printing each component as it lands."""
    orchestrator = Orchestrator(LLMClient())

    def _report(artifact):
        marker = "FALLBACK" if artifact.is_fallback else "ok"
        print(f"  [{marker}] {artifact.component_id}")

    summary = orchestrator.run_full(_request_from_args(args), on_component=_report)

    print(f"\nSession:  {summary.session_id}")
    print(f"Output:   {orchestrator.store.path_for(summary.session_id)}")
    print(f"Status:   {summary.status}")
    print(f"Saved {len(summary.generated)}/{summary.plan.expected_count} component(s)")
    if summary.fallbacks:
        print(f"Fallbacks used: {', '.join(summary.fallbacks)}")
    for component_id, error in summary.save_failures.items():
        print(f"  [ERROR] {component_id}: {error}")
    return 1 if summary.save_failures else 0


def cmd_chat(args):
    """Apply one chat instruction to a persisted session."""
    orchestrator = Orchestrator(LLMClient())
    if not orchestrator.store.exists(args.session):
        print(f"Session not found: {args.session}", file=sys.stderr)
        return 1
    reply = orchestrator.patch(args.message, _request_from_args(args), session_id=args.session)
    print(reply.content)
    if reply.updated_code:
        print(f"\nUpdated: {', '.join(sorted(reply.updated_code))}")
    return 0


def cmd_watch(args):
    """Poll a running server until the session's components are all persisted."""

    def _on_update(state):
        print(f"  {len(state.completed_components)}/{args.expected}: "
              f"{', '.join(state.completed_components)}")

    async def _watch():
        transport = HttpTransport(base_url=args.server)
        try:
            poller = Poller(transport, on_update=_on_update)
            status = await poller.run(args.session, args.expected)
            return poller, status
        finally:
            await transport.aclose()

    poller, status = asyncio.run(_watch())
    print(f"\nPolling {status} ({poller.stop_reason}) after {poller.poll_state.attempts} poll(s)")
    return 1 if status == ERROR else 0


def cmd_list_components(args):
    print("Available components:")
    for component_id, description in COMPONENTS.items():
        print(f"  {component_id:14s} - {description}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        prog="sitebuilder",
        description="AI website generation and live preview sync",
    )
    parser.add_argument("--verbose", action="store_true", help="Show debug logging")
    subparsers = parser.add_subparsers(dest="command")

    analyze_parser = subparsers.add_parser("analyze", help="Plan the components for a site")
    _add_request_args(analyze_parser)

    generate_parser = subparsers.add_parser("generate", help="Generate and save a full site")
    _add_request_args(generate_parser)

    chat_parser = subparsers.add_parser("chat", help="Edit a generated component by instruction")
    chat_parser.add_argument("--session", required=True, help="Session id (userId)")
    chat_parser.add_argument("--message", required=True, help="Instruction, e.g. 'make the footer dark'")
    _add_request_args(chat_parser, required=False)

    watch_parser = subparsers.add_parser("watch", help="Poll a server for a session's components")
    watch_parser.add_argument("--session", required=True, help="Session id (userId)")
    watch_parser.add_argument("--expected", type=int, required=True, help="Expected component count")
    watch_parser.add_argument("--server", default=None, help="Server base URL")

    subparsers.add_parser("list-components", help="List the component vocabulary")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    commands = {
        "analyze": cmd_analyze,
        "generate": cmd_generate,
        "chat": cmd_chat,
        "watch": cmd_watch,
        "list-components": cmd_list_components,
    }
    if args.command not in commands:
        parser.print_help()
        sys.exit(1)
    sys.exit(commands[args.command](args) or 0)


if __name__ == "__main__":
    main()
