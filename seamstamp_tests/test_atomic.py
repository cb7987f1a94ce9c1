import os
import shutil

import pytest

from seamstamp import atomic


def _write(path, data: bytes):
    with open(path, 'wb') as outf:
        outf.write(data)


def _read(path) -> bytes:
    with open(path, 'rb') as inf:
        return inf.read()


def test_temporary_sibling_path(tmp_path):
    target = str(tmp_path / 'report.pdf')
    temp = atomic.temporary_sibling_path(target)
    assert os.path.dirname(temp) == str(tmp_path)
    stem, token, ext = os.path.basename(temp).split('.')
    assert stem == 'report'
    assert ext == 'pdf'
    assert len(token) == 32
    assert atomic.temporary_sibling_path(target) != temp


def test_replacing_commits(tmp_path):
    target = str(tmp_path / 'doc.pdf')
    _write(target, b'old')
    with atomic.replacing(target) as temp:
        _write(temp, b'new')
    assert _read(target) == b'new'
    assert os.listdir(tmp_path) == ['doc.pdf']


def test_replacing_creates_new_file(tmp_path):
    target = str(tmp_path / 'doc.pdf')
    with atomic.replacing(target) as temp:
        _write(temp, b'new')
    assert _read(target) == b'new'


def test_replacing_error_keeps_original(tmp_path):
    target = str(tmp_path / 'doc.pdf')
    _write(target, b'old')
    with pytest.raises(RuntimeError):
        with atomic.replacing(target) as temp:
            _write(temp, b'half-written')
            raise RuntimeError('boom')
    assert _read(target) == b'old'
    assert os.listdir(tmp_path) == ['doc.pdf']


def test_replacing_error_before_temp_written(tmp_path):
    target = str(tmp_path / 'doc.pdf')
    _write(target, b'old')
    with pytest.raises(KeyboardInterrupt):
        with atomic.replacing(target):
            raise KeyboardInterrupt
    assert os.listdir(tmp_path) == ['doc.pdf']


def _failing_replace(src, dst):
    raise OSError('cross-device link')


def test_commit_falls_back_to_copy(tmp_path, monkeypatch):
    target = str(tmp_path / 'doc.pdf')
    temp = str(tmp_path / 'doc.tmp.pdf')
    _write(target, b'old')
    _write(temp, b'new')
    monkeypatch.setattr(os, 'replace', _failing_replace)
    atomic.commit_replacement(target, temp)
    assert _read(target) == b'new'
    assert not os.path.exists(temp)


def test_commit_fallback_clears_read_only(tmp_path, monkeypatch):
    target = str(tmp_path / 'doc.pdf')
    temp = str(tmp_path / 'doc.tmp.pdf')
    _write(target, b'old')
    _write(temp, b'new')
    os.chmod(target, 0o444)
    monkeypatch.setattr(os, 'replace', _failing_replace)
    atomic.commit_replacement(target, temp)
    assert _read(target) == b'new'


def test_commit_fallback_failure_deletes_temp(tmp_path, monkeypatch):
    target = str(tmp_path / 'doc.pdf')
    temp = str(tmp_path / 'doc.tmp.pdf')
    _write(target, b'old')
    _write(temp, b'new')

    def _failing_copy(src, dst):
        raise OSError('disk full')

    monkeypatch.setattr(os, 'replace', _failing_replace)
    monkeypatch.setattr(shutil, 'copyfile', _failing_copy)
    with pytest.raises(OSError, match='disk full'):
        atomic.commit_replacement(target, temp)
    assert _read(target) == b'old'
    assert not os.path.exists(temp)


def test_commit_fallback_partial_copy(tmp_path, monkeypatch):
    target = str(tmp_path / 'doc.pdf')
    temp = str(tmp_path / 'doc.tmp.pdf')
    _write(target, b'old content')
    _write(temp, b'new content')

    def _interrupted_copy(src, dst):
        _write(dst, b'new')
        raise OSError('disk full')

    monkeypatch.setattr(os, 'replace', _failing_replace)
    monkeypatch.setattr(shutil, 'copyfile', _interrupted_copy)
    with pytest.raises(OSError, match='disk full'):
        atomic.commit_replacement(target, temp)
    # the copy fallback is not atomic
    assert _read(target) == b'new'
    assert not os.path.exists(temp)


def test_safe_delete_missing_file(tmp_path):
    # must not raise
    atomic.safe_delete(str(tmp_path / 'nothing-here.pdf'))


def test_safe_delete_swallows_errors(tmp_path, monkeypatch):
    fname = str(tmp_path / 'doc.pdf')
    _write(fname, b'data')

    def _failing_remove(path):
        raise PermissionError('locked')

    monkeypatch.setattr(os, 'remove', _failing_remove)
    atomic.safe_delete(fname)
    assert os.path.exists(fname)
