"""Multiplication tables: 2-9 times 2-99."""

from fluency.decks.base import Deck as BaseDeck, parse_int, shuffled
from fluency.models import AnswerCheck


class Deck(BaseDeck):
    id = "multiplication"
    name = "Multiplication Tables"
    description = "Learn multiplication tables (2-9 × 2-99) with 784 unique problems"
    input_type = "numeric"

    def generate_items(self, rng=None):
        items = []
        for multiplicand in range(2, 10):
            for multiplier in range(2, 100):
                items.append(self.new_item(
                    f"mult-{multiplicand}x{multiplier}",
                    {"multiplicand": multiplicand, "multiplier": multiplier}))
        return shuffled(items, rng)

    def format_question(self, item):
        return f"{item.content['multiplicand']} × {item.content['multiplier']}"

    def check_answer(self, item, answer):
        expected = item.content["multiplicand"] * item.content["multiplier"]
        value = parse_int(answer)
        return AnswerCheck(correct=value is not None and value == expected,
                           canonical_answer=str(expected),
                           user_answer=str(answer))

    def canonical_answer(self, item):
        return str(item.content["multiplicand"] * item.content["multiplier"])
