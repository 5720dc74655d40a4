"""Short-option command-line parsing with POSIX getopt rules."""

from __future__ import annotations

from collections.abc import Sequence


class GetoptError(Exception):
    """Raised for an option letter that the option string does not know."""

    def __init__(self, program: str, option: str) -> None:
        super().__init__(f"{program}: unknown option -{option}")
        self.program = program
        self.option = option


def getopt(
    argv: Sequence[str], optstring: str
) -> tuple[list[tuple[str, str | None]], list[str]]:
    """Parse short options from ``argv`` (which includes the program name).

    A letter followed by ``:`` in ``optstring`` takes an argument, either the
    rest of the same word or the next word; at the end of ``argv`` the
    argument is None. Parsing stops at the first word that is not an
    option, at a lone ``-``, or after ``--``. Returns the ``(letter, arg)``
    pairs and the remaining words.
    """
    program = argv[0] if argv else ""
    opts: list[tuple[str, str | None]] = []
    index = 1
    while index < len(argv):
        word = argv[index]
        if not word.startswith("-") or word == "-":
            break
        index += 1
        if word == "--":
            break
        pos = 1
        while pos < len(word):
            letter = word[pos]
            pos += 1
            place = optstring.find(letter)
            if letter == ":" or place < 0:
                raise GetoptError(program, letter)
            if optstring[place + 1 : place + 2] == ":":
                if pos < len(word):
                    arg: str | None = word[pos:]
                elif index < len(argv):
                    arg = argv[index]
                    index += 1
                else:
                    arg = None
                opts.append((letter, arg))
                break
            opts.append((letter, None))
    return opts, list(argv[index:])