#!/usr/bin/env python3
"""
Interactive CLI demo for the game identifier.

Feeds recognizer output (a JSON file or a comma-separated list of titles)
through the resolution pipeline and lets you correct and confirm the results.
"""
import asyncio
import logging
import os
import sys

# Imports assume PYTHONPATH=src is set (e.g., PYTHONPATH=src python demo/cli_demo.py)
from game_identifier.app import GameIdentifierApp
from game_identifier.config_loader import load_config_from_env
from game_identifier.exceptions import GameIdentifierError


def print_banner():
    """Print welcome banner."""
    print("\n" + "=" * 60)
    print("  Game Identifier - Interactive CLI Demo")
    print("=" * 60)
    print("\nCommands:")
    print("  capture <file.json | title, title, ...>  resolve recognized titles")
    print("  search <title>                           rank catalog matches")
    print("  fix <n> <title>                          correct candidate n")
    print("  retry <n>                                resolve candidate n again")
    print("  confirm <n> | discard <n>                accept or drop candidate n")
    print("  list                                     show the board")
    print("\nType 'quit' or 'exit' to end the session.")
    print("-" * 60 + "\n")


def print_candidates(candidates):
    if not candidates:
        print("  (no candidates)")
    for number, candidate in enumerate(candidates, start=1):
        line = f"  {number}. [{candidate.status.value}] {candidate.display_title}"
        if candidate.resolved_entry:
            year = candidate.resolved_entry.year_published or "?"
            line += f" ({year}, id {candidate.resolved_entry.id}, {candidate.match_type.value})"
        elif candidate.error_message:
            line += f" - {candidate.error_message}"
        print(line)
    print("-" * 60)


def read_capture_payload(argument):
    if os.path.isfile(argument):
        with open(argument, "r", encoding="utf-8") as f:
            return f.read()
    return [title.strip() for title in argument.split(",") if title.strip()]


def pick_candidate(service, argument):
    candidates = service.candidates
    index = int(argument) - 1
    if not 0 <= index < len(candidates):
        raise IndexError(f"No candidate number {argument}")
    return candidates[index]


async def handle_fix(service, argument):
    number, _, title = argument.partition(" ")
    candidate = pick_candidate(service, number)
    result = await service.suggest(title or candidate.searched_term or candidate.raw_title)
    if result.is_empty():
        print(f"  {result.message}")
        return

    for number, suggestion in enumerate(result.suggestions, start=1):
        year = suggestion.entry.year_published or "?"
        print(f"  {number}. {suggestion.name} ({year}) [{suggestion.match_type.value}]")
    choice = (await asyncio.to_thread(input, "Pick a number (blank to cancel): ")).strip()
    if not choice:
        return
    chosen = result.suggestions[int(choice) - 1]
    updated = service.select_suggestion(chosen, candidate_id=candidate.id)
    print(f"  ✅ {updated.display_title}")


async def handle_command(service, command, argument):
    if command == "capture":
        result = await service.begin_capture(read_capture_payload(argument))
        if result.message:
            print(f"  {result.message}")
            return
        print(f"  ⏳ Resolving {len(result.candidates)} titles...")
        print_candidates(await service.wait_idle())
    elif command == "search":
        outcome = await service.search(argument)
        if outcome.error:
            print(f"  ❌ {outcome.error}")
        for match in outcome.matches:
            print(f"  - {match.entry.name} [{match.match_type.value}, {match.similarity:.2f}]")
        if not outcome.matches and not outcome.error:
            print("  No matches.")
    elif command == "fix":
        await handle_fix(service, argument)
    elif command == "retry":
        candidate = pick_candidate(service, argument)
        await service.retry_candidate(candidate.id)
        print_candidates(service.candidates)
    elif command == "confirm":
        confirmed = service.confirm(pick_candidate(service, argument).id)
        print(f"  ✅ Confirmed {confirmed.display_title}")
    elif command == "discard":
        service.discard(pick_candidate(service, argument).id)
    elif command == "list":
        print_candidates(service.candidates)
    else:
        print(f"  Unknown command: {command}")


async def run():
    """Main CLI loop."""
    print_banner()

    try:
        config = load_config_from_env()
        logging.getLogger().setLevel(config.log_level)
        app = GameIdentifierApp(config)
        app.initialize()
        service = app.service
    except Exception as e:
        print(f"\n❌ Failed to initialize service: {e}")
        print("Please check your environment variables and configuration.")
        return 1

    print(f"✅ Ready! {len(app.store)} games in the catalog.\n")

    try:
        while True:
            try:
                line = (await asyncio.to_thread(input, "You: ")).strip()
            except (KeyboardInterrupt, EOFError):
                print("\n\n👋 Goodbye!\n")
                break

            if not line:
                continue
            if line.lower() in ["quit", "exit", "q"]:
                print("\n👋 Goodbye!\n")
                break

            command, _, argument = line.partition(" ")
            try:
                await handle_command(service, command.lower(), argument.strip())
            except (GameIdentifierError, ValueError, IndexError) as e:
                print(f"\n❌ Error: {e}")
                print("-" * 60)
    finally:
        await service.close()

    return 0


def main():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )
    return asyncio.run(run())


if __name__ == "__main__":
    sys.exit(main())
