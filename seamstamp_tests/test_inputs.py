import os

import pytest

from seamstamp.errors import DocumentError, StampResourceError
from seamstamp.inputs import (
    compose_output_path,
    ensure_output_path_valid,
    is_pdf_path,
    resolve_input_files,
)


def _touch(path):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'wb') as outf:
        outf.write(b'%PDF-1.7\n')
    return path


@pytest.fixture
def doc_tree(tmp_path):
    root = tmp_path / 'docs'
    _touch(str(root / 'b.pdf'))
    _touch(str(root / 'A.PDF'))
    _touch(str(root / 'notes.txt'))
    _touch(str(root / 'sub' / 'c.pdf'))
    return root


def test_is_pdf_path():
    assert is_pdf_path('x/y/report.pdf')
    assert is_pdf_path('REPORT.PDF')
    assert not is_pdf_path('report.pdf.txt')


def test_resolve_directory(doc_tree):
    result = resolve_input_files([str(doc_tree)], recursive=False)
    assert [os.path.basename(p) for p in result] == ['A.PDF', 'b.pdf']
    assert all(os.path.isabs(p) for p in result)


def test_resolve_directory_recursive(doc_tree):
    result = resolve_input_files([str(doc_tree)], recursive=True)
    assert [os.path.relpath(p, str(doc_tree)) for p in result] == [
        'A.PDF',
        'b.pdf',
        os.path.join('sub', 'c.pdf'),
    ]


def test_resolve_deduplicates(doc_tree):
    single = str(doc_tree / 'b.pdf')
    result = resolve_input_files(
        [single, str(doc_tree), single], recursive=False
    )
    assert [os.path.basename(p) for p in result] == ['b.pdf', 'A.PDF']


def test_resolve_empty_directory(tmp_path):
    assert resolve_input_files([str(tmp_path)], recursive=True) == []


def test_resolve_no_inputs():
    with pytest.raises(StampResourceError):
        resolve_input_files([], recursive=False)


def test_resolve_missing_path(tmp_path):
    with pytest.raises(StampResourceError, match='not found'):
        resolve_input_files([str(tmp_path / 'missing.pdf')], recursive=False)


def test_resolve_not_a_pdf(doc_tree):
    with pytest.raises(StampResourceError, match='not a PDF'):
        resolve_input_files([str(doc_tree / 'notes.txt')], recursive=False)


def test_compose_output_path():
    assert compose_output_path('/in/report.pdf', '/out', '_stamped') == (
        os.path.join('/out', 'report_stamped.pdf')
    )


def test_output_path_same_as_input(tmp_path):
    fname = _touch(str(tmp_path / 'doc.pdf'))
    with pytest.raises(DocumentError, match='resolves to the input'):
        ensure_output_path_valid(fname, fname, overwrite=True)


def test_output_path_exists(tmp_path):
    src = _touch(str(tmp_path / 'doc.pdf'))
    dest = _touch(str(tmp_path / 'out' / 'doc_stamped.pdf'))
    with pytest.raises(DocumentError, match='already exists'):
        ensure_output_path_valid(src, dest, overwrite=False)
    ensure_output_path_valid(src, dest, overwrite=True)
