import re
from typing import Optional

# Discord rejects messages longer than this
MESSAGE_LIMIT = 2000

INVITE_URL_REGEX = re.compile(r'(?:discord\.gg|discord(?:app)?\.com/invite)/([A-Za-z0-9-]+)', re.IGNORECASE)
INVITE_CODE_REGEX = re.compile(r'^[A-Za-z0-9-]+$')


def parse_invite_code(value: str) -> Optional[str]:
    """Extract an invite code from a bare code or any discord.gg / discord.com/invite URL."""
    value = value.strip()
    match = INVITE_URL_REGEX.search(value)
    if match:
        return match.group(1)
    if INVITE_CODE_REGEX.match(value):
        return value
    return None


def chunk_message(text: str, limit: int = MESSAGE_LIMIT) -> list[str]:
    """
    Split text into messages no longer than `limit`.
    Breaks on line boundaries; a single oversized line is hard-split.
    """
    chunks = []
    current = ""

    for line in text.splitlines(keepends=True):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]

        if len(current) + len(line) > limit:
            chunks.append(current)
            current = ""
        current += line

    if current:
        chunks.append(current)
    return [chunk.rstrip("\n") for chunk in chunks if chunk.strip()]
