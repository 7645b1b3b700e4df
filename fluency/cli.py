"""CLI: command-line interface for fluency."""

import argparse
import dataclasses
import pathlib
import sys
from datetime import datetime, timezone

from fluency import storage
from fluency.app import App
from fluency.errors import UnknownDeckError

QUIT = ":q"


def _read_answer(deck) -> str | None:
    """Prompt until the deck accepts the input. None means quit."""
    while True:
        try:
            answer = input("> ")
        except EOFError:
            print()
            return None
        if answer.strip() == QUIT:
            return None
        if deck.is_valid_input(answer):
            return answer
        if deck.input_type == "numeric":
            print("Please enter a whole number.")
        else:
            print("Please enter an answer.")


def _correction(deck, item) -> bool:
    """Ask for the right answer after a miss. False means quit."""
    print(f"Type the correct answer to continue: {deck.canonical_answer(item)}")
    while True:
        answer = _read_answer(deck)
        if answer is None:
            return False
        if deck.check_answer(item, answer).correct:
            return True


def cmd_review(args, app: App):
    app.init_db()
    app.register_decks()
    app.load_engine()
    review = app.review_session()

    if args.deck:
        if not app.registry.has(args.deck):
            print(f"Unknown deck: {args.deck}", file=sys.stderr)
            app.close()
            return
        if args.deck not in review.settings.enabled_decks:
            stats = review.set_deck_enabled(args.deck, True)
            print(f"Enabled {args.deck} ({stats['new']} new items)")
        review.settings = dataclasses.replace(review.settings, enabled_decks=[args.deck])

    if not review.active_items():
        print("No items to review. Enable a deck with 'fluency decks --enable ID'.")
        app.close()
        return

    print(f"Answer each question and press Enter ({QUIT} to stop).")
    while args.limit is None or review.reviewed < args.limit:
        item = review.next_item()
        if item is None:
            break
        deck = app.registry.resolve_for_item(item)
        print(f"\n{deck.format_question(item)}")
        answer = _read_answer(deck)
        if answer is None:
            break
        try:
            outcome = review.submit_answer(answer)
        except UnknownDeckError as e:
            print(f"Failed to process answer: {e}", file=sys.stderr)
            break
        seconds = outcome.response_time_ms / 1000
        if outcome.check.correct:
            print(f"Correct ({outcome.rating.name.title()}, {seconds:.1f}s)")
        else:
            print(f"Incorrect ({outcome.rating.name.title()}, {seconds:.1f}s)")
            if not _correction(deck, item):
                break

    print(f"\nReviewed {review.reviewed} item(s)")
    app.close()


def cmd_status(args, app: App):
    app.init_db()
    app.register_decks()
    review = app.review_session()
    now = datetime.now(timezone.utc)
    stats = review.stats(now)

    print(f"Items:          {stats['total']} active ({len(review.items)} total)")
    print(f"Due now:        {stats['due']}")
    print(f"New:            {stats['new']}")
    print(f"Learning:       {stats['learning']}")
    print(f"Review:         {stats['review']}")
    print(f"Relearning:     {stats['relearning']}")
    print(f"Avg. elapsed:   {stats['average_elapsed_days']:.1f} days")
    mastered = stats["review"] / stats["total"] if stats["total"] else 0.0
    print(f"Mastered:       {stats['review']}/{stats['total']} ({mastered:.0%})")

    answers = review.response_stats()
    print(f"Total reviews:  {answers['responses']}")
    print(f"Accuracy:       {answers['accuracy']:.0%} "
          f"({answers['correct']}/{answers['responses']})")
    print(f"Recent:         {answers['recent_accuracy']:.0%} "
          f"of last {answers['recent_responses']}")
    print(f"Avg. correct:   {answers['average_correct_time_ms'] / 1000:.1f}s")

    minutes = review.session.total_session_time_ms / 60000
    print(f"This session:   {minutes:.1f} min since "
          f"{review.session.session_start_time.astimezone():%Y-%m-%d %H:%M}")

    target = review.settings.warmup_target
    if review.settings.enabled_decks:
        print("\nWarm-up:")
        for deck_id in review.settings.enabled_decks:
            deck_stats = review.session.speed_stats.get(deck_id)
            count = len(deck_stats.samples) if deck_stats else 0
            state = "done" if deck_stats and deck_stats.warmed_up else f"{count}/{target}"
            line = f"  {deck_id}: {state}"
            if count:
                p = deck_stats.percentiles
                line += (f"  p25 {p.p25 / 1000:.1f}s  p50 {p.p50 / 1000:.1f}s"
                         f"  p75 {p.p75 / 1000:.1f}s  p90 {p.p90 / 1000:.1f}s")
            print(line)

    if review.settings.show_upcoming_reviews:
        upcoming = review.upcoming(now)
        print("\nUpcoming reviews:")
        for day, count in enumerate(upcoming):
            label = "today" if day == 0 else f"+{day}d"
            print(f"  {label:>6}: {count}")

    app.close()


def cmd_decks(args, app: App):
    app.init_db()
    app.register_decks()
    review = app.review_session()

    try:
        if args.enable:
            stats = review.set_deck_enabled(args.enable, True)
            print(f"Enabled {args.enable} ({stats['new']} new items)")
        if args.disable:
            review.set_deck_enabled(args.disable, False)
            print(f"Disabled {args.disable} (progress kept)")
    except UnknownDeckError as e:
        print(f"Error: {e}", file=sys.stderr)
        app.close()
        sys.exit(1)

    counts: dict[str, int] = {}
    for item in review.items:
        counts[item.deck_id] = counts.get(item.deck_id, 0) + 1
    for deck in app.registry.all():
        mark = "x" if deck.id in review.settings.enabled_decks else " "
        print(f"[{mark}] {deck.id:<16} {deck.name} ({counts.get(deck.id, 0)} items)")
        print(f"    {deck.description}")
    app.close()


def cmd_export(args, app: App):
    app.init_db()
    app.register_decks()
    review = app.review_session()
    text = storage.export_data(review.items, review.session, review.settings)
    if args.file:
        pathlib.Path(args.file).write_text(text, encoding="utf-8")
        print(f"Exported {len(review.items)} items to {args.file}")
    else:
        print(text)
    app.close()


def cmd_import(args, app: App):
    try:
        text = pathlib.Path(args.file).read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: cannot read {args.file}: {e}", file=sys.stderr)
        sys.exit(1)
    app.init_db()
    result = storage.import_data(app.store, text)
    app.close()
    if not result.success:
        print(f"Import failed: {result.error}", file=sys.stderr)
        sys.exit(1)
    print(f"Imported {args.file}")


def cmd_reset(args, app: App):
    if not args.yes:
        print("This deletes all items, history, and settings. Re-run with --yes.")
        return
    app.init_db()
    storage.clear_all(app.store)
    print("All data cleared.")
    app.close()


def main():
    parser = argparse.ArgumentParser(prog="fluency", description="Speed-graded flashcards")
    subparsers = parser.add_subparsers(dest="command")

    p_review = subparsers.add_parser("review", help="Start a review session")
    p_review.add_argument("--limit", type=int, help="Stop after this many answers")
    p_review.add_argument("--deck", help="Only review this deck")

    subparsers.add_parser("status", help="Show item counts and stats")

    p_decks = subparsers.add_parser("decks", help="List, enable, or disable decks")
    p_decks.add_argument("--enable", metavar="ID", help="Enable a deck")
    p_decks.add_argument("--disable", metavar="ID", help="Disable a deck (keeps progress)")

    p_export = subparsers.add_parser("export", help="Write a JSON backup")
    p_export.add_argument("file", nargs="?", help="Output file (default: stdout)")

    p_import = subparsers.add_parser("import", help="Restore a JSON backup")
    p_import.add_argument("file", help="Backup file")

    p_reset = subparsers.add_parser("reset", help="Delete all stored data")
    p_reset.add_argument("--yes", action="store_true", help="Confirm deletion")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    app = App()
    if not app.data_dir.exists():
        app.data_dir.mkdir(parents=True, exist_ok=True)
        print(f"Created data directory: {app.data_dir}")

    if args.command == "review":
        cmd_review(args, app)
    elif args.command == "status":
        cmd_status(args, app)
    elif args.command == "decks":
        cmd_decks(args, app)
    elif args.command == "export":
        cmd_export(args, app)
    elif args.command == "import":
        cmd_import(args, app)
    elif args.command == "reset":
        cmd_reset(args, app)
