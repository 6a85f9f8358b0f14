import pytest

from farmutil.errors import HostListFileOpenError, InvalidHostSpec, InvalidPort
from farmutil.hosts import (
    DEFAULT_PORT,
    DEFAULT_REMOTE_PATH,
    DirectHost,
    TunnelHost,
    collectHosts,
    parseHostSpec,
    parseHosts,
    readHostFile,
    tokenize,
)


def test_tokenize_drops_empty_tokens():
    assert tokenize("a;;b;", ";") == ["a", "b"]
    assert tokenize("u@h:p", "@:") == ["u", "h", "p"]
    assert tokenize("", ";") == []


def test_direct_host_default_port():
    assert parseHostSpec("render1.example.org") == DirectHost("render1.example.org", DEFAULT_PORT)


def test_direct_host_with_port():
    assert parseHostSpec("render1:8000") == DirectHost("render1", 8000)


def test_direct_host_trailing_colon_uses_default_port():
    assert parseHostSpec("render1:") == DirectHost("render1", DEFAULT_PORT)


@pytest.mark.parametrize("spec", [":", "::", "a:1:2", "a:b:c:d"])
def test_direct_host_invalid_token_count(spec):
    with pytest.raises(InvalidHostSpec):
        parseHostSpec(spec)


@pytest.mark.parametrize("port", ["http", "80x", "0", "70000", "1_000", " 80", "+80", "٨٠"])
def test_direct_host_invalid_port(port):
    with pytest.raises(InvalidPort) as excInfo:
        parseHostSpec(f"render1:{port}")
    assert excInfo.value.port == port
    # an invalid port is an invalid host specification too
    assert isinstance(excInfo.value, InvalidHostSpec)


def test_tunnel_host_default_path():
    assert parseHostSpec("alice@render2") == TunnelHost("alice", "render2", DEFAULT_REMOTE_PATH)


def test_tunnel_host_with_path():
    assert parseHostSpec("alice@render2:/opt/farmutil") == TunnelHost(
        "alice", "render2", "/opt/farmutil"
    )


@pytest.mark.parametrize("spec", ["@render2", "alice@", "alice@render2:/opt:x", "a@b@c:d:e"])
def test_tunnel_host_invalid_token_count(spec):
    with pytest.raises(InvalidHostSpec):
        parseHostSpec(spec)


def test_at_sign_always_means_tunnel():
    # "1234" would be a port for a direct host, here it is a path
    assert parseHostSpec("bob@h:1234") == TunnelHost("bob", "h", "1234")


def test_parse_hosts_empty():
    assert parseHosts("") == []
    assert parseHosts(";;") == []


def test_parse_hosts_preserves_order():
    hosts = parseHosts("a;b:9000;carol@c")
    assert hosts == [DirectHost("a"), DirectHost("b", 9000), TunnelHost("carol", "c")]


def test_parse_hosts_configured_defaults():
    hosts = parseHosts("a;carol@c", defaultPort=9999, defaultRemotePath="/srv/farm")
    assert hosts == [DirectHost("a", 9999), TunnelHost("carol", "c", "/srv/farm")]


def test_parse_hosts_fails_on_first_invalid():
    with pytest.raises(InvalidHostSpec) as excInfo:
        parseHosts("a;b:1:2;c")
    assert excInfo.value.spec == "b:1:2"


def test_read_host_file_skips_comments_and_blanks(tmp_path):
    hostFile = tmp_path / "hosts.txt"
    hostFile.write_text("# render nodes\nrender1\n\n   \nalice@render2:/opt/farm\n#render3\nrender4:8000\n")
    assert readHostFile(hostFile) == "render1;alice@render2:/opt/farm;render4:8000"


def test_read_host_file_missing(tmp_path):
    with pytest.raises(HostListFileOpenError):
        readHostFile(tmp_path / "missing.txt")


def test_read_host_file_not_text(tmp_path):
    hostFile = tmp_path / "hosts.bin"
    hostFile.write_bytes(b"render1\n\xff\xfe\n")
    with pytest.raises(HostListFileOpenError) as excInfo:
        readHostFile(hostFile)
    assert isinstance(excInfo.value.__cause__, UnicodeDecodeError)


def test_collect_hosts_command_line_then_files(tmp_path):
    fileA = tmp_path / "a.txt"
    fileA.write_text("f1\nf2\n")
    fileB = tmp_path / "b.txt"
    fileB.write_text("# nothing here\n")
    text = collectHosts(["c1;c2", "c3"], [fileA, fileB])
    assert [h.host for h in parseHosts(text)] == ["c1", "c2", "c3", "f1", "f2"]
