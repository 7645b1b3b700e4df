"""addition deck: single-digit addition facts, as a user deck example.

Drop a file like this into `<data_dir>/decks/` and it is registered at
startup next to the built-in decks. A file named after a built-in deck
(e.g. `katakana.py`) replaces that deck.

The module must expose a `Deck` class. Instances need these attributes:

    id           unique deck id, stored with every item
    name         display name
    description  one line shown by `fluency decks`
    input_type   "numeric" or "text"

and these methods:

    generate_items(rng=None) -> list[Item]
    format_question(item) -> str
    check_answer(item, answer) -> AnswerCheck
    canonical_answer(item) -> str
    is_valid_input(answer) -> bool

Subclassing fluency.decks.base.Deck provides is_valid_input and new_item.
"""

from fluency.decks.base import Deck as BaseDeck, parse_int, shuffled
from fluency.models import AnswerCheck


class Deck(BaseDeck):
    id = "addition"
    name = "Addition"
    description = "Single-digit addition facts (1-9 + 1-9)"
    input_type = "numeric"

    def generate_items(self, rng=None):
        items = [self.new_item(f"add-{a}+{b}", {"a": a, "b": b})
                 for a in range(1, 10) for b in range(1, 10)]
        return shuffled(items, rng)

    def format_question(self, item):
        return f"{item.content['a']} + {item.content['b']}"

    def check_answer(self, item, answer):
        expected = item.content["a"] + item.content["b"]
        value = parse_int(answer)
        return AnswerCheck(correct=value == expected,
                           canonical_answer=str(expected),
                           user_answer=str(answer))

    def canonical_answer(self, item):
        return str(item.content["a"] + item.content["b"])
