#!/usr/bin/env python3
"""Brand Agent Console CLI."""

import argparse
import logging
import sys

from config.settings import Settings
from errors import AgentConsoleError, SynthesisError
from orchestrator import AgentConsoleOrchestrator
from retrieval import context_items
from schemas.context import ContextKind


def print_progress(event):
    status = "FAILED" if event.failed else f"{event.percent:5.1f}%"
    print(f"[{status}] {event.detail or event.phase}")


def build_items(orchestrator, args):
    """Apply the context options of the train command to the stored items."""
    items = [] if args.reset else list(orchestrator.load_workspace(args.token).items)

    for text in args.text or []:
        items = context_items.add_text(items, text)
    for url in args.url or []:
        items = context_items.add_url(items, url)
    for rule in args.rule or []:
        items = context_items.add_business_rule(items, rule)
    for channel in ("support", "sales", "technical"):
        value = getattr(args, channel)
        if value is not None:
            items = context_items.set_contact_channel(items, channel, value)
    for path in args.file or []:
        items = context_items.add_file(items, path)

    hydrated = []
    for item in items:
        if item.kind == ContextKind.FILE and not item.file_binary:
            try:
                item = orchestrator.ingestor.hydrate(item)
            except (OSError, ValueError) as e:
                print(f"Skipping file {item.file_name}: {e}", file=sys.stderr)
                continue
        hydrated.append(item)
    return hydrated


def cmd_train(orchestrator, args):
    items = build_items(orchestrator, args)
    orchestrator.update_context(args.token, items)

    try:
        profile = orchestrator.train(args.token, language=args.language, progress=print_progress)
    except SynthesisError as e:
        print(f"Training failed after {e.attempts} attempts: {e.last_error}", file=sys.stderr)
        return 1

    print("\n" + "="*60)
    print(f"AGENT: {profile.agent_name} ({profile.brand_color})")
    print("="*60)
    print(profile.summary)
    print(f"\nProducts: {len(profile.products)} | Sections: {len(profile.navigation_tree)} "
          f"| Sources: {len(profile.sources)}")
    if not profile.contact_info.is_empty():
        print(f"Contacts: {profile.contact_info.model_dump(exclude_none=True)}")
    return 0


def print_response(response):
    print(f"\nAgent: {response.text}")
    for card in response.product_cards:
        price = f" - {card.price}" if card.price else ""
        print(f"  [{card.kind.value}] {card.name}{price}\n          {card.buy_url}")


def cmd_chat(orchestrator, args):
    session = orchestrator.open_session(args.token, language=args.language)
    try:
        if args.message:
            print_response(orchestrator.chat(session, args.message))
            return 0

        greeting = session.state.last_turn()
        if greeting:
            print(f"Agent: {greeting.text}")
        while True:
            try:
                message = input("\nYou: ").strip()
            except (EOFError, KeyboardInterrupt):
                print()
                break
            if message.lower() in ("exit", "quit"):
                break
            if message:
                print_response(orchestrator.chat(session, message))
        return 0
    finally:
        orchestrator.close_session(session)


def cmd_embed(orchestrator, args):
    print(orchestrator.embed_snippet(args.token, theme=args.theme))
    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Brand Agent Console - train and test a branded sales chatbot"
    )
    parser.add_argument("--provider", choices=["openai", "anthropic"], default="openai",
                        help="LLM provider (default: openai)")
    parser.add_argument("--model", type=str, help="Override the default model")
    parser.add_argument("--db-path", type=str, default="data/agent_console.db",
                        help="SQLite database path")
    parser.add_argument("--language", choices=["en", "es"], default="en",
                        help="Language of the agent (default: en)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    train = subparsers.add_parser("train", help="Add context and synthesize the agent profile")
    train.add_argument("--token", "-t", required=True, help="Workspace access token")
    train.add_argument("--text", action="append", help="Business information (repeatable)")
    train.add_argument("--url", action="append", help="Website url (repeatable)")
    train.add_argument("--file", action="append", help="Document to upload (repeatable)")
    train.add_argument("--rule", action="append", help="Business rule (repeatable)")
    train.add_argument("--support", help="Support/warranty contact (empty string removes it)")
    train.add_argument("--sales", help="Sales contact")
    train.add_argument("--technical", help="Technical service contact")
    train.add_argument("--strategy", choices=["structured", "two_phase"], default="structured",
                       help="Synthesis strategy (default: structured)")
    train.add_argument("--reset", action="store_true", help="Start from an empty context")

    chat = subparsers.add_parser("chat", help="Chat with the trained agent")
    chat.add_argument("--token", "-t", required=True, help="Workspace access token")
    chat.add_argument("--message", "-m", help="Single message (interactive when omitted)")
    chat.add_argument("--response-strategy", choices=["structured", "text_scrubbing"],
                      default="structured", help="How replies are requested")
    chat.add_argument("--no-live-search", action="store_true", help="Disable live web search")

    embed = subparsers.add_parser("embed", help="Print the widget embed snippet")
    embed.add_argument("--token", "-t", required=True, help="Workspace access token")
    embed.add_argument("--theme", choices=["light", "dark"], default="light")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    settings = Settings(
        llm_provider=args.provider,
        llm_model=args.model,
        db_path=args.db_path,
        default_language=args.language,
        synthesis_strategy=getattr(args, "strategy", "structured"),
        response_strategy=getattr(args, "response_strategy", "structured"),
        live_search_enabled=not getattr(args, "no_live_search", False),
        verbose=args.verbose,
    )

    orchestrator = AgentConsoleOrchestrator(settings=settings)
    commands = {"train": cmd_train, "chat": cmd_chat, "embed": cmd_embed}

    try:
        code = commands[args.command](orchestrator, args)
    except AgentConsoleError as e:
        print(f"Error: {e}", file=sys.stderr)
        code = 1
    except Exception as e:
        print(f"Error processing command: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        code = 1
    finally:
        orchestrator.shutdown()

    sys.exit(code)


if __name__ == "__main__":
    main()
