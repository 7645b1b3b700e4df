"""Subtraction with positive results: minuend 2-99, subtrahend below it."""

from fluency.decks.base import Deck as BaseDeck, parse_int, shuffled
from fluency.models import AnswerCheck


class Deck(BaseDeck):
    id = "subtraction"
    name = "Subtraction"
    description = "Subtraction problems (1-99 − 1-99) with 4,851 unique problems"
    input_type = "numeric"

    def generate_items(self, rng=None):
        items = []
        for minuend in range(2, 100):
            for subtrahend in range(1, minuend):
                items.append(self.new_item(
                    f"sub-{minuend}-{subtrahend}",
                    {"minuend": minuend, "subtrahend": subtrahend}))
        return shuffled(items, rng)

    def format_question(self, item):
        return f"{item.content['minuend']} − {item.content['subtrahend']}"

    def check_answer(self, item, answer):
        expected = item.content["minuend"] - item.content["subtrahend"]
        value = parse_int(answer)
        return AnswerCheck(correct=value is not None and value == expected,
                           canonical_answer=str(expected),
                           user_answer=str(answer))

    def canonical_answer(self, item):
        return str(item.content["minuend"] - item.content["subtrahend"])
