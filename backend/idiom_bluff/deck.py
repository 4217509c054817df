"""The idiom deck: round content shared read-only by every room."""

IDIOMS = (
    "It's raining cats and dogs",
    "Break a leg",
    "Piece of cake",
    "Hit the nail on the head",
    "Spill the beans",
    "Cost an arm and a leg",
    "Under the weather",
    "Bite off more than you can chew",
    "Beat around the bush",
    "Pull someone's leg",
)


class IdiomDeck:
    """Fixed, ordered sequence of phrases. Round N plays ``deck[N]``."""

    def __init__(self, phrases=IDIOMS):
        self._phrases = tuple(phrases)
        if not self._phrases:
            raise ValueError("An idiom deck needs at least one phrase")

    def __len__(self):
        return len(self._phrases)

    def __getitem__(self, index):
        return self._phrases[index]

    def __iter__(self):
        return iter(self._phrases)

    def deal(self, rounds: int = 0) -> tuple:
        """Return the phrases a new room plays, optionally cut to ``rounds``."""
        if rounds and rounds > 0:
            return self._phrases[:rounds]
        return self._phrases


default_deck = IdiomDeck()
