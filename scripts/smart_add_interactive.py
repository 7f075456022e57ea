#!/usr/bin/env python3
# =============================================================================
# scripts/smart_add_interactive.py - Smart Add in the Terminal
# =============================================================================
# Walks through a smart add against an in-memory demo wishlist: you answer
# "which matters more?" until the position is known, then the item is
# committed with a computed key.
#
# Usage:
#   python scripts/smart_add_interactive.py "Noise cancelling headphones"
#   python scripts/smart_add_interactive.py                 # Prompts for a name
#
# Answers:
#   1 / new      - the new item matters more
#   2 / existing - the existing item matters more
#   /back        - undo the last answer
#   /cancel      - stop ranking and add the item at the bottom
#   /list        - show the wishlist
#   /quit        - exit without adding anything
# =============================================================================

import os
import sys
from uuid import uuid4

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from core.models.item import ItemCreate
from core.models.smart_add import FinalizeStatus, WizardPhase
from core.services.item_service import ItemService
from core.services.item_store import InMemoryItemStore
from core.services.smart_add_service import SmartAddService
from lib.binary_insert import BinaryChoice
from lib.priority_math import format_priority

DEMO_ITEMS = [
    "Road bike",
    "Espresso machine",
    "Hiking boots",
    "Kindle",
    "Cast iron pan",
    "Board game",
    "Desk plant",
]

ANSWERS = {
    "1": BinaryChoice.NEW,
    "new": BinaryChoice.NEW,
    "2": BinaryChoice.EXISTING,
    "existing": BinaryChoice.EXISTING,
}


def create_demo_wishlist(service: ItemService):
    """Seed a wishlist, most important first."""
    wishlist_id = uuid4()
    for name in DEMO_ITEMS:
        service.create_item(wishlist_id, ItemCreate(name=name))
    return wishlist_id


def print_list(service: ItemService, wishlist_id, highlight_id=None):
    """Print the wishlist in display order."""
    print("\n" + "-" * 50)
    for rank, item in enumerate(service.snapshot(wishlist_id).items, 1):
        marker = "  <- new" if item.id == highlight_id else ""
        print(f"  {rank:>2}. {item.name:<30} {format_priority(item.priority)[:12]}{marker}")
    print("-" * 50 + "\n")


def print_help():
    """Print help message."""
    print("\n" + "-" * 40)
    print("ANSWERS:")
    print("  1 or new      - the new item matters more")
    print("  2 or existing - the existing item matters more")
    print("  /back   - Undo the last answer")
    print("  /cancel - Add at the bottom instead")
    print("  /list   - Show the wishlist")
    print("  /quit   - Exit")
    print("-" * 40 + "\n")


def main():
    """Run one smart add."""
    name = " ".join(sys.argv[1:]).strip() or input("Item to add: ").strip()
    if not name:
        print("Nothing to add.")
        return

    service = ItemService(InMemoryItemStore())
    smart_add = SmartAddService(service)
    wishlist_id = create_demo_wishlist(service)

    print("\n" + "=" * 60)
    print("  Smart Add")
    print("=" * 60)
    print_list(service, wishlist_id)
    print_help()

    session = smart_add.start(wishlist_id, ItemCreate(name=name))

    while session.phase is not WizardPhase.FINALIZING:
        progress = session.progress()
        print(f"Question {progress.question_number} of ~{progress.max_questions}")
        answer = input(f"  [1] {name}  or  [2] {session.current_item.name}? ").strip().lower()

        if answer in ("/quit", "/exit"):
            print("Nothing added.")
            return
        if answer == "/help":
            print_help()
            continue
        if answer == "/list":
            print_list(service, wishlist_id)
            continue
        if answer == "/cancel":
            session = session.cancel()
            item = service.create_item(wishlist_id, session.draft)
            print(f"\nAdded '{item.name}' at the bottom.")
            print_list(service, wishlist_id, highlight_id=item.id)
            return
        if answer == "/back":
            if not session.machine.history:
                print("  Nothing to undo.")
            else:
                session = session.go_back()
            continue
        if answer not in ANSWERS:
            print("  Please answer 1 or 2 (or /help).")
            continue

        session = session.choose(ANSWERS[answer])

    result = smart_add.finalize(session)

    if result.status is FinalizeStatus.COMMITTED:
        session = smart_add.mark_committed(session)
        print(f"\nAdded '{result.item.name}' at position {session.position + 1}.")
        print_list(service, wishlist_id, highlight_id=result.item.id)
    elif result.status is FinalizeStatus.PRECISION_EXHAUSTED:
        print("\nNo room between those two items. Rebalancing; please run again.")
        service.rebalance(wishlist_id)
    else:
        print("\nThe list changed while you were answering. Nothing was added.")


if __name__ == "__main__":
    main()
