"""Tests for DSN masking, TLS mode handling and parsing."""

import pytest

from mysql_mcp.dsn import DEFAULT_PORT, apply_tls_mode, mask_dsn, parse_dsn
from mysql_mcp.errors import ConfigurationError

SAMPLE_DSNS = [
    "reader:secret@tcp(db.internal:3306)/shop",
    "reader:p@ss@word@tcp(db:3306)/shop?charset=utf8mb4",
    "reader@tcp(db:3306)/shop",
    "/shop",
    "",
    "user:***@tcp(db:3306)/shop",
    "u:p@unix(/var/run/mysqld/mysqld.sock)/app",
]


class TestMaskDsn:
    """mask_dsn() hides the span from the first ':' to the last '@'."""

    def test_basic(self):
        assert mask_dsn("reader:secret@tcp(db:3306)/shop") == "reader:***@tcp(db:3306)/shop"

    def test_password_containing_at(self):
        assert mask_dsn("reader:p@ss@word@tcp(db:3306)/shop") == "reader:***@tcp(db:3306)/shop"

    def test_no_at_unchanged(self):
        assert mask_dsn("tcp(db:3306)/shop") == "tcp(db:3306)/shop"

    def test_no_colon_unchanged(self):
        assert mask_dsn("reader@localhost/shop") == "reader@localhost/shop"

    def test_at_before_colon_unchanged(self):
        # No password: the only ':' is the port, after the '@'.
        assert mask_dsn("reader@tcp(db:3306)/shop") == "reader@tcp(db:3306)/shop"

    @pytest.mark.parametrize("dsn", SAMPLE_DSNS)
    def test_idempotent(self, dsn):
        assert mask_dsn(mask_dsn(dsn)) == mask_dsn(dsn)

    @pytest.mark.parametrize("dsn", [d for d in SAMPLE_DSNS if ":" in d and "@" in d])
    def test_keeps_text_outside_password_span(self, dsn):
        masked = mask_dsn(dsn)
        colon, at = dsn.find(":"), dsn.rfind("@")
        if at > colon:
            assert masked.startswith(dsn[: colon + 1])
            assert masked.endswith(dsn[at:])

    def test_password_not_in_output(self):
        assert "secret" not in mask_dsn("reader:secret@tcp(db:3306)/shop")


class TestApplyTlsMode:
    @pytest.mark.parametrize("ssl", ["", None, "false", "FALSE", "0", "  false "])
    def test_disabled_leaves_dsn(self, ssl):
        dsn = "u:p@tcp(db:3306)/shop"
        assert apply_tls_mode(dsn, ssl) == dsn

    @pytest.mark.parametrize(
        "ssl,expected",
        [
            ("true", "tls=true"),
            ("1", "tls=true"),
            ("skip-verify", "tls=skip-verify"),
            ("preferred", "tls=preferred"),
            ("PREFERRED", "tls=preferred"),
            ("yes-please", "tls=true"),
        ],
    )
    def test_mode_mapping(self, ssl, expected):
        assert apply_tls_mode("u:p@tcp(db:3306)/shop", ssl) == f"u:p@tcp(db:3306)/shop?{expected}"

    def test_appends_to_existing_query_string(self):
        result = apply_tls_mode("u:p@tcp(db:3306)/shop?charset=utf8mb4", "skip-verify")
        assert result == "u:p@tcp(db:3306)/shop?charset=utf8mb4&tls=skip-verify"

    def test_existing_tls_param_kept(self):
        dsn = "u:p@tcp(db:3306)/shop?tls=preferred"
        assert apply_tls_mode(dsn, "true") == dsn


class TestParseDsn:
    def test_full_tcp_dsn(self):
        parsed = parse_dsn("reader:pw@tcp(db.example.com:3307)/shop?charset=utf8mb4,utf8&tls=true")
        assert parsed.user == "reader"
        assert parsed.password == "pw"
        assert parsed.net == "tcp"
        assert parsed.host == "db.example.com"
        assert parsed.port == 3307
        assert parsed.database == "shop"
        args = parsed.connect_args()
        assert args["charset"] == "utf8mb4"
        assert args["ssl"] == {"check_hostname": True, "verify_mode": True}

    def test_password_with_at_and_slash(self):
        parsed = parse_dsn("reader:p@s/s@tcp(db:3306)/shop")
        assert parsed.user == "reader"
        assert parsed.password == "p@s/s"
        assert parsed.database == "shop"

    def test_default_port(self):
        parsed = parse_dsn("reader:pw@tcp(db)/shop")
        assert parsed.host == "db"
        assert parsed.port == DEFAULT_PORT

    def test_no_location_defaults_to_localhost(self):
        parsed = parse_dsn("reader:pw@/shop")
        assert parsed.net == "tcp"
        assert parsed.host == "127.0.0.1"
        assert parsed.port == DEFAULT_PORT

    def test_unix_socket(self):
        parsed = parse_dsn("reader:pw@unix(/var/run/mysqld/mysqld.sock)/app")
        assert parsed.net == "unix"
        assert parsed.connect_args()["unix_socket"] == "/var/run/mysqld/mysqld.sock"

    def test_skip_verify_disables_verification(self):
        parsed = parse_dsn("u:p@tcp(db:3306)/shop?tls=skip-verify")
        assert parsed.connect_args()["ssl"] == {"check_hostname": False, "verify_mode": False}

    def test_no_tls_no_ssl_args(self):
        assert "ssl" not in parse_dsn("u:p@tcp(db:3306)/shop").connect_args()

    def test_sqlalchemy_url(self):
        url = parse_dsn("reader:pw@tcp(db:3307)/shop").sqlalchemy_url()
        assert url.drivername == "mysql+pymysql"
        assert url.username == "reader"
        assert url.password == "pw"
        assert url.host == "db"
        assert url.port == 3307
        assert url.database == "shop"

    def test_missing_slash_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_dsn("reader:pw@tcp(db:3306)")

    def test_unsupported_network_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_dsn("reader:pw@udp(db:3306)/shop")

    def test_invalid_port_rejected(self):
        with pytest.raises(ConfigurationError):
            _ = parse_dsn("reader:pw@tcp(db:abc)/shop").port
