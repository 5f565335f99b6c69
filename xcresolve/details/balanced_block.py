from typing import Optional, Tuple

QUOTE = '"'
ESCAPE = "\\"
COMMENT_OPEN = "/*"
COMMENT_CLOSE = "*/"


# Scan forward from just after an opening delimiter until the matching closing
# delimiter at depth zero. Quoted strings and /* */ comments are opaque, so a
# `}` inside "${PRODUCT_NAME:rfc1034identifier}" never closes the block.
# Returns (body, end) where end is the index just past the closing delimiter,
# or None if the input ends while still nested.
def extract_balanced_block(
    content: str, start: int, open_char: str = "{", close_char: str = "}"
) -> Optional[Tuple[str, int]]:
    depth = 1
    in_quote = False
    i = start
    length = len(content)
    while i < length:
        ch = content[i]
        if in_quote:
            if ch == ESCAPE:
                i += 2
                continue
            if ch == QUOTE:
                in_quote = False
        elif ch == QUOTE:
            in_quote = True
        elif content.startswith(COMMENT_OPEN, i):
            close = content.find(COMMENT_CLOSE, i + len(COMMENT_OPEN))
            if close == -1:
                return None
            i = close + len(COMMENT_CLOSE)
            continue
        elif ch == open_char:
            depth += 1
        elif ch == close_char:
            depth -= 1
            if depth == 0:
                return content[start:i], i + 1
        i += 1
    return None
