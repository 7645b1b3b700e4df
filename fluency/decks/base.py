"""Deck contract shared by built-in and user decks.

A deck owns one family of content. It enumerates its full item universe,
formats questions, and checks answers. Scheduling and grading never look
inside `item.content`; only the owning deck does.

User decks live in `<data_dir>/decks/<name>.py` and expose a `Deck` class.
Subclassing `fluency.decks.base.Deck` is convenient but not required: any
object with the same attributes and methods works.
"""

import random
import re
from datetime import datetime, timezone

from fluency.models import AnswerCheck, Item, MemoryState

_INTEGER_RE = re.compile(r'^-?\d+$')


class Deck:
    id = ""
    name = ""
    description = ""
    input_type = "text"  # "numeric" or "text"

    def generate_items(self, rng: random.Random | None = None) -> list[Item]:
        raise NotImplementedError

    def format_question(self, item: Item) -> str:
        raise NotImplementedError

    def check_answer(self, item: Item, answer: str | int) -> AnswerCheck:
        raise NotImplementedError

    def canonical_answer(self, item: Item) -> str:
        raise NotImplementedError

    def is_valid_input(self, answer: str) -> bool:
        """Whether raw input is acceptable for this deck's input type."""
        answer = answer.strip()
        if self.input_type == "numeric":
            return bool(_INTEGER_RE.match(answer))
        return bool(answer)

    def new_item(self, item_id: str, content: dict,
                 now: datetime | None = None) -> Item:
        if now is None:
            now = datetime.now(timezone.utc)
        return Item(id=item_id, deck_id=self.id, content=content,
                    memory=MemoryState.new(now))


def shuffled(items: list, rng: random.Random | None = None) -> list:
    """Return a shuffled copy so presentation order is not predictable."""
    result = list(items)
    (rng or random).shuffle(result)
    return result


def parse_int(answer: str | int) -> int | None:
    if isinstance(answer, int):
        return answer
    answer = answer.strip()
    if not _INTEGER_RE.match(answer):
        return None
    return int(answer)
