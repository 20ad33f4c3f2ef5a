"""Small parsing helpers shared by the REPL and commands."""

import re
import shlex


def split_commands(text):
    """A helper for splitting in-quote commands delimited by semicolons or newlines.

    We can't just split the whole string by semicolons because we have to respect the string boundaries
    if there are quoted elements, so we just get to iterate the entire string character by character. yay.
    """
    # Remove comments (must have leading whitespace or start the line so "fg:#dfdfdf" survives)
    text = re.sub(r"(^|\s+)#.*", "", text, flags=re.MULTILINE).strip()

    commands = []
    current_command = ""
    quote = ""
    escape_next = False

    for char in text:
        if escape_next:
            current_command += char
            escape_next = False
        elif char == "\\" and quote != "'":
            current_command += char
            escape_next = True
        elif char in "\"'" and (not quote or quote == char):
            current_command += char
            quote = "" if quote else char
        elif char in ";\n" and not quote:
            commands.append(current_command.strip())
            current_command = ""
        else:
            current_command += char

    if current_command:
        commands.append(current_command.strip())

    return commands


def split_words(command: str) -> list[str]:
    """Split one command into words with shell quoting rules.

    Raises ValueError on unbalanced quotes.
    """
    return shlex.split(command)
