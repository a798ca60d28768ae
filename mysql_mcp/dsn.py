"""DSN helpers for the ``user:password@tcp(host:port)/database?k=v`` format.

Three jobs:
- mask_dsn(): hide the password before a DSN is shown to a caller or logged.
- apply_tls_mode(): fold a connection's ``ssl`` setting into the DSN.
- parse_dsn(): turn the DSN into a SQLAlchemy URL plus PyMySQL connect args.

Usage:
    from mysql_mcp.dsn import mask_dsn, parse_dsn
    parsed = parse_dsn(apply_tls_mode(dsn, "skip-verify"))
    engine = create_engine(parsed.sqlalchemy_url(), connect_args=parsed.connect_args())
"""

import re
from dataclasses import dataclass, field
from urllib.parse import parse_qsl

from sqlalchemy.engine import URL

from mysql_mcp.errors import ConfigurationError

MASK_TOKEN = "***"
DEFAULT_PORT = 3306

_TLS_MODES = {
    "true": "true",
    "1": "true",
    "skip-verify": "skip-verify",
    "preferred": "preferred",
}
_TLS_DISABLED = frozenset({"", "false", "0"})

_LOCATION_RE = re.compile(r"(?P<net>\w+)(?:\((?P<addr>[^)]*)\))?")


def mask_dsn(dsn: str) -> str:
    """Replace the password span of a DSN with ``***``.

    The span runs from the first ``:`` to the LAST ``@`` (passwords may
    contain ``@``). DSNs without both separators, in that order, are
    returned unchanged. Masking an already masked DSN is a no-op.
    """
    colon = dsn.find(":")
    at = dsn.rfind("@")
    if colon == -1 or at == -1 or at < colon:
        return dsn
    return dsn[: colon + 1] + MASK_TOKEN + dsn[at:]


def apply_tls_mode(dsn: str, ssl: str | None) -> str:
    """Append a ``tls=<mode>`` parameter for the given ssl setting.

    ``""``, ``false`` and ``0`` leave the DSN alone, as does an existing
    ``tls=`` parameter in the query string. ``true``/``1``, ``skip-verify``
    and ``preferred`` map to themselves; anything else maps to ``true``.
    """
    mode = (ssl or "").strip().lower()
    if mode in _TLS_DISABLED:
        return dsn

    query_start = dsn.find("?")
    if query_start != -1 and "tls=" in dsn[query_start:]:
        return dsn

    tls_value = _TLS_MODES.get(mode, "true")
    separator = "&" if query_start != -1 else "?"
    return f"{dsn}{separator}tls={tls_value}"


@dataclass(frozen=True)
class ParsedDSN:
    """Components of a driver-format DSN."""

    user: str
    password: str
    net: str
    address: str
    database: str
    params: dict[str, str] = field(default_factory=dict)

    @property
    def host(self) -> str:
        if self.net == "unix":
            return "localhost"
        host = self.address.rpartition(":")[0] if ":" in self.address else self.address
        return host or "127.0.0.1"

    @property
    def port(self) -> int:
        if self.net == "unix" or ":" not in self.address:
            return DEFAULT_PORT
        _, _, port = self.address.rpartition(":")
        try:
            return int(port)
        except ValueError as e:
            raise ConfigurationError("invalid DSN port", port) from e

    def sqlalchemy_url(self) -> URL:
        return URL.create(
            "mysql+pymysql",
            username=self.user or None,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.database or None,
        )

    def connect_args(self) -> dict:
        """PyMySQL keyword arguments derived from the DSN parameters."""
        args: dict = {}
        if self.net == "unix":
            args["unix_socket"] = self.address
        if charset := self.params.get("charset"):
            # Go-style DSNs allow a fallback list, PyMySQL takes one charset.
            args["charset"] = charset.split(",")[0]

        tls = self.params.get("tls", "").lower()
        if tls in ("true", "1"):
            args["ssl"] = {"check_hostname": True, "verify_mode": True}
        elif tls in ("skip-verify", "preferred"):
            # PyMySQL has no opportunistic mode; preferred encrypts without verifying.
            args["ssl"] = {"check_hostname": False, "verify_mode": False}
        return args


def parse_dsn(dsn: str) -> ParsedDSN:
    """Parse ``[user[:password]@][net[(addr)]]/dbname[?param=value&...]``.

    Follows the driver's own rules: the database name starts after the LAST
    ``/`` and credentials end at the LAST ``@`` before it.

    Raises:
        ConfigurationError: If the DSN has no ``/`` or an unreadable location.
    """
    slash = dsn.rfind("/")
    if slash == -1:
        raise ConfigurationError("invalid DSN", "missing the slash before the database name")

    head, tail = dsn[:slash], dsn[slash + 1 :]
    database, _, query = tail.partition("?")

    at = head.rfind("@")
    if at == -1:
        credentials, location = "", head
    else:
        credentials, location = head[:at], head[at + 1 :]
    user, _, password = credentials.partition(":")

    net, address = "tcp", ""
    if location:
        match = _LOCATION_RE.fullmatch(location)
        if match is None:
            raise ConfigurationError("invalid DSN network address", mask_dsn(dsn))
        net = match.group("net")
        address = match.group("addr") or ""
    if net not in ("tcp", "unix"):
        raise ConfigurationError("unsupported DSN network", net)

    params = dict(parse_qsl(query, keep_blank_values=True))
    return ParsedDSN(
        user=user,
        password=password,
        net=net,
        address=address,
        database=database,
        params=params,
    )
