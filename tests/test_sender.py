import json
import logging

import pytest

import chunk_sender
from chunk_frame import encode_chunk


@pytest.fixture(autouse=True)
def in_tmp(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def patch_link(monkeypatch, fake_link):
    opened = {}

    def factory(*replies):
        link = fake_link(replies)

        def fake_open(port, config):
            opened['port'] = port
            opened['config'] = config
            return link

        monkeypatch.setattr(chunk_sender.SerialLink, 'open', staticmethod(fake_open))
        return link, opened
    return factory


def test_no_input_file():
    assert chunk_sender.main([]) == 1


def test_unreadable_file(in_tmp):
    assert chunk_sender.main([str(in_tmp / 'missing.bin'), 'loop://']) == 1


def test_read_payload_error(in_tmp):
    with pytest.raises(chunk_sender.PayloadError):
        chunk_sender.read_payload(str(in_tmp / 'missing.bin'))


def test_no_tty_configured(in_tmp):
    (in_tmp / 'data.bin').write_bytes(b'abc')
    assert chunk_sender.main(['data.bin']) == 1


def test_port_open_failure(in_tmp):
    (in_tmp / 'data.bin').write_bytes(b'abc')
    assert chunk_sender.main(['data.bin', '/dev/does-not-exist-chunk-sender', '-q']) == 1


def test_successful_transfer(in_tmp, patch_link):
    payload = bytes(range(1, 11))
    (in_tmp / 'data.bin').write_bytes(payload)
    link, opened = patch_link('k\n', 'k\n')
    assert chunk_sender.main(['data.bin', '/dev/ttyACM0', '-q']) == 0
    assert opened['port'] == '/dev/ttyACM0'
    assert link.writes == [encode_chunk(payload[:8]), encode_chunk(payload[8:])]
    assert link.settled == 2.0
    assert link.closed


def test_tty_from_config_file(in_tmp, patch_link):
    (in_tmp / '.sender_config.json').write_text(json.dumps({
        'tty': '/dev/ttyUSB3', 'baudrate': 57600, 'start_timeout': 0,
    }))
    (in_tmp / 'data.bin').write_bytes(b'')
    link, opened = patch_link('k')
    assert chunk_sender.main(['data.bin', '--quiet']) == 0
    assert opened['port'] == '/dev/ttyUSB3'
    assert opened['config'].baudrate == 57600
    assert link.settled == 0.0


def test_baudrate_override(in_tmp, patch_link):
    (in_tmp / 'data.bin').write_bytes(b'x')
    _, opened = patch_link('k')
    assert chunk_sender.main(['data.bin', 'loop://', '--baudrate', '9600', '-q']) == 0
    assert opened['config'].baudrate == 9600


def test_explicit_config_missing(in_tmp):
    (in_tmp / 'data.bin').write_bytes(b'x')
    assert chunk_sender.main(['data.bin', 'loop://', '--config', 'other.json']) == 1


def test_malformed_config(in_tmp):
    (in_tmp / '.sender_config.json').write_text('{not json')
    (in_tmp / 'data.bin').write_bytes(b'x')
    assert chunk_sender.main(['data.bin', 'loop://']) == 1


def test_aborted_transfer(in_tmp, patch_link):
    (in_tmp / 'data.bin').write_bytes(b'x' * 20)
    link, _ = patch_link('k')
    assert chunk_sender.main(['data.bin', 'loop://', '-q']) == 1
    assert link.closed


def test_progress_bar_output(in_tmp, patch_link, capsys):
    (in_tmp / 'data.bin').write_bytes(b'x' * 16)
    patch_link('f', 'k', 'k')
    assert chunk_sender.main(['data.bin', 'loop://']) == 0
    out = capsys.readouterr().out
    assert '50.00% 1/2 chunks' in out
    assert '100.00% 2/2 chunks' in out


def test_list_ports(monkeypatch, capsys):
    monkeypatch.setattr(chunk_sender, 'list_serial_ports', lambda: ['/dev/ttyUSB0', '/dev/ttyACM0'])
    assert chunk_sender.main(['--list-ports']) == 0
    assert capsys.readouterr().out.split() == ['/dev/ttyUSB0', '/dev/ttyACM0']


def test_ctrl_c_exits_with_failure(in_tmp, patch_link):
    (in_tmp / 'data.bin').write_bytes(b'x' * 16)
    link, _ = patch_link()

    def interrupted():
        raise KeyboardInterrupt
        yield  # pragma: no cover

    link.lines = interrupted
    assert chunk_sender.main(['data.bin', 'loop://', '-q']) == 1
    assert link.closed
    assert len(link.writes) == 1


def test_progress_bar_hides_per_chunk_logs(in_tmp, patch_link, caplog):
    (in_tmp / 'data.bin').write_bytes(b'x' * 16)
    patch_link('k', 'k')
    with caplog.at_level(logging.INFO):
        assert chunk_sender.main(['data.bin', 'loop://']) == 0
    assert 'Sending chunk' not in caplog.text
    assert logging.getLogger('chunk_controller').level == logging.NOTSET


def test_quiet_keeps_per_chunk_logs(in_tmp, patch_link, caplog):
    (in_tmp / 'data.bin').write_bytes(b'x' * 16)
    patch_link('k', 'k')
    with caplog.at_level(logging.INFO):
        assert chunk_sender.main(['data.bin', 'loop://', '-q']) == 0
    assert 'Sending chunk: 1' in caplog.text
