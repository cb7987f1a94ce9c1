import datetime
from io import BytesIO
from typing import Optional, Sequence

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID
from PIL import Image, ImageDraw
from pyhanko.pdf_utils import generic, writer
from pyhanko.pdf_utils.reader import PdfFileReader

LETTER_BOX = (0, 0, 612, 792)
A4_BOX = (0, 0, 595, 842)
SMALL_BOX = (0, 0, 300, 144)

DUMMY_PASSPHRASE = 'secret'


def simple_page(pdf_out, media_box=SMALL_BOX, rotate: Optional[int] = None):
    # a filled square, so the page has some content to preserve
    stream = generic.StreamObject(stream_data=b'0 0 1 rg 10 10 50 50 re f')
    page = writer.PageObject(
        contents=pdf_out.add_object(stream),
        media_box=generic.ArrayObject(map(generic.NumberObject, media_box)),
    )
    if rotate is not None:
        page[generic.pdf_name('/Rotate')] = generic.NumberObject(rotate)
    return page


def build_pdf(
    page_count: int,
    media_box=SMALL_BOX,
    rotations: Optional[Sequence[int]] = None,
    password: Optional[str] = None,
) -> bytes:
    w = writer.PdfFileWriter()
    for ix in range(page_count):
        rotate = rotations[ix] if rotations else None
        w.insert_page(simple_page(w, media_box=media_box, rotate=rotate))
    if password is not None:
        w.encrypt(password, password)
    out = BytesIO()
    w.write(out)
    return out.getvalue()


MINIMAL = build_pdf(1)
MINIMAL_TWO_PAGES = build_pdf(2)
FIVE_PAGES = build_pdf(5)
FIVE_PAGES_A4 = build_pdf(5, media_box=A4_BOX)
ROTATED_PAGES = build_pdf(4, media_box=A4_BOX, rotations=(0, 90, 180, 270))
FIVE_PAGES_AES256 = build_pdf(5, password=DUMMY_PASSPHRASE)


def write_file(fname: str, data: bytes) -> str:
    with open(fname, 'wb') as outf:
        outf.write(data)
    return fname


def make_seal_image(
    width: int = 120, height: int = 80, mode: str = 'RGB'
) -> Image.Image:
    """
    A red disc on a white (or transparent) background.
    """
    background = (255, 255, 255, 0) if mode == 'RGBA' else 'white'
    img = Image.new(mode, (width, height), background)
    draw = ImageDraw.Draw(img)
    draw.ellipse((10, 5, width - 10, height - 5), fill='red')
    return img


def write_seal_image(fname: str, fmt: str, **kwargs) -> str:
    mode = 'RGBA' if fmt == 'PNG' else 'RGB'
    make_seal_image(mode=mode, **kwargs).save(fname, format=fmt)
    return fname


def generate_pkcs12(passphrase: Optional[bytes] = DUMMY_PASSPHRASE.encode()):
    """
    Generate a self-signed RSA certificate and package it as a PKCS#12 file.

    :return:
        The PKCS#12 file as bytes, and the certificate.
    """
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name(
        [
            x509.NameAttribute(NameOID.COMMON_NAME, 'SeamStamp Test Signer'),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, 'SeamStamp Tests'),
        ]
    )
    tz = datetime.timezone.utc
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(datetime.datetime(2020, 1, 1, tzinfo=tz))
        .not_valid_after(datetime.datetime(2040, 1, 1, tzinfo=tz))
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=True,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .sign(key, hashes.SHA256())
    )
    if passphrase:
        encryption = serialization.BestAvailableEncryption(passphrase)
    else:
        encryption = serialization.NoEncryption()
    p12_bytes = pkcs12.serialize_key_and_certificates(
        b'signer', key, cert, None, encryption
    )
    return p12_bytes, cert


def read_pdf(fname: str, password: Optional[str] = None) -> PdfFileReader:
    with open(fname, 'rb') as inf:
        data = inf.read()
    r = PdfFileReader(BytesIO(data))
    if password is not None:
        r.decrypt(password)
    return r


def page_object(reader: PdfFileReader, page_ix: int):
    page_ref, _ = reader.find_page_for_modification(page_ix)
    return page_ref.get_object()


def stamp_xobject_names(reader: PdfFileReader, page_ix: int):
    page = page_object(reader, page_ix)
    try:
        xobjects = page['/Resources']['/XObject']
    except KeyError:
        return []
    return [name for name in xobjects.keys() if name.startswith('/Stamp')]


def content_streams(reader: PdfFileReader, page_ix: int):
    contents = page_object(reader, page_ix)['/Contents']
    if isinstance(contents, generic.StreamObject):
        return [contents.data]
    return [ref.get_object().data for ref in contents]
