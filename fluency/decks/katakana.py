"""Katakana reading: the 46 basic characters and their romanizations.

The first romanization of each entry is the primary (Hepburn) one; the rest
are accepted variants (Kunrei-shiki and the like).
"""

from fluency.decks.base import Deck as BaseDeck, shuffled
from fluency.models import AnswerCheck

KATAKANA = [
    # Vowels
    ("ア", ["a"]), ("イ", ["i"]), ("ウ", ["u"]), ("エ", ["e"]), ("オ", ["o"]),
    # K
    ("カ", ["ka"]), ("キ", ["ki"]), ("ク", ["ku"]), ("ケ", ["ke"]), ("コ", ["ko"]),
    # S
    ("サ", ["sa"]), ("シ", ["shi", "si"]), ("ス", ["su"]), ("セ", ["se"]), ("ソ", ["so"]),
    # T
    ("タ", ["ta"]), ("チ", ["chi", "ti"]), ("ツ", ["tsu", "tu"]), ("テ", ["te"]), ("ト", ["to"]),
    # N
    ("ナ", ["na"]), ("ニ", ["ni"]), ("ヌ", ["nu"]), ("ネ", ["ne"]), ("ノ", ["no"]),
    # H
    ("ハ", ["ha"]), ("ヒ", ["hi"]), ("フ", ["fu", "hu"]), ("ヘ", ["he"]), ("ホ", ["ho"]),
    # M
    ("マ", ["ma"]), ("ミ", ["mi"]), ("ム", ["mu"]), ("メ", ["me"]), ("モ", ["mo"]),
    # Y
    ("ヤ", ["ya"]), ("ユ", ["yu"]), ("ヨ", ["yo"]),
    # R
    ("ラ", ["ra"]), ("リ", ["ri"]), ("ル", ["ru"]), ("レ", ["re"]), ("ロ", ["ro"]),
    # W
    ("ワ", ["wa"]), ("ヲ", ["wo", "o"]),
    ("ン", ["n"]),
]


class Deck(BaseDeck):
    id = "katakana"
    name = "Katakana"
    description = "Learn to read basic Katakana characters (46 cards)"
    input_type = "text"

    def generate_items(self, rng=None):
        items = [self.new_item(f"katakana-{char}",
                               {"character": char, "romaji": list(romaji)})
                 for char, romaji in KATAKANA]
        return shuffled(items, rng)

    def format_question(self, item):
        return item.content["character"]

    def check_answer(self, item, answer):
        given = str(answer).strip().lower()
        accepted = [r.lower() for r in item.content["romaji"]]
        return AnswerCheck(correct=given in accepted,
                           canonical_answer=item.content["romaji"][0],
                           user_answer=str(answer))

    def canonical_answer(self, item):
        romaji = item.content["romaji"]
        if len(romaji) > 1:
            return f"{romaji[0]} (or {', '.join(romaji[1:])})"
        return romaji[0]
