"""Safe construction of MySQL identifiers.

quote_ident() is the only permitted path for interpolating a caller-supplied
database, table, column or alias name into SQL text. Introspection statements
such as ``SHOW TABLES FROM `db``` cannot take bound parameters, so the name is
checked against a small deny-set and wrapped in backticks.
"""

from mysql_mcp.errors import InvalidIdentifier

MAX_IDENTIFIER_LENGTH = 64

# Characters that could terminate or escape a backtick-quoted identifier,
# or start a second statement.
_FORBIDDEN_CHARS = frozenset(" \t\n\r;`\\")


def quote_ident(name: str) -> str:
    """Validate ``name`` and return it wrapped in a single pair of backticks.

    Raises:
        InvalidIdentifier: If the name is empty, longer than 64 characters,
            or contains whitespace, a semicolon, a backtick or a backslash.
    """
    if not name:
        raise InvalidIdentifier("identifier cannot be empty")
    if len(name) > MAX_IDENTIFIER_LENGTH:
        raise InvalidIdentifier(
            "identifier too long",
            f"{len(name)} characters (max {MAX_IDENTIFIER_LENGTH})",
        )
    if _FORBIDDEN_CHARS.intersection(name):
        raise InvalidIdentifier("identifier contains invalid characters", repr(name))
    return f"`{name}`"


def quote_qualified(database: str, table: str) -> str:
    """Return ```database`.`table``` with both parts validated."""
    return f"{quote_ident(database)}.{quote_ident(table)}"


def truncate_query(query: str, max_len: int = 200) -> str:
    """Shorten a SQL echo for logs and error messages."""
    if len(query) <= max_len:
        return query
    return query[:max_len] + "..."
