"""
Digital signatures for stamped documents.

Signing is done by pyHanko. The signature is a detached CMS signature
(SHA-256) in a new, invisible signature field on the last page.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional

from asn1crypto import x509
from pyhanko.sign import fields, signers
from pyhanko.sign.general import SigningError
from pyhanko.sign.signers.pdf_byterange import BuildProps

from .document import StampingDocument
from .errors import (
    SignatureSetupError,
    StampingConfigurationError,
    StampResourceError,
)
from .options import SignatureMode, SignatureOptions

__all__ = ['SignatureContext', 'load_signature_context', 'sign_document']

logger = logging.getLogger(__name__)

DIGEST_ALGORITHM = 'sha256'


@dataclass
class SignatureContext:
    """
    Key material used to sign documents.
    """

    signer: Optional[signers.SimpleSigner]
    """
    The signer. Set to ``None`` once the context is closed.
    """

    chain: List[x509.Certificate] = field(default_factory=list)
    """
    Certificate chain, signer's certificate first.
    """

    @property
    def closed(self) -> bool:
        return self.signer is None

    def close(self):
        self.signer = None
        self.chain = []


def _build_chain(signer: signers.SimpleSigner) -> List[x509.Certificate]:
    signing_cert = signer.signing_cert
    chain = [signing_cert]
    registry = signer.cert_registry
    if registry is not None:
        chain.extend(c for c in registry if c.dump() != signing_cert.dump())
    return chain


def load_signature_context(
    options: SignatureOptions,
) -> Optional[SignatureContext]:
    """
    Load the signing key material specified in the signature options.

    :param options:
        The signature options.
    :return:
        A :class:`.SignatureContext`, or ``None`` if signing is disabled.
    :raises StampingConfigurationError:
        if self-signed signing is requested, or if no certificate file was
        specified.
    :raises StampResourceError:
        if the certificate file does not exist.
    :raises SignatureSetupError:
        if the certificate file could not be loaded.
    """
    mode = options.mode
    if mode == SignatureMode.NONE:
        return None
    elif mode == SignatureMode.SELF_SIGNED:
        raise StampingConfigurationError(
            "Signing with a self-signed certificate is not supported; "
            "use sign mode 'pfx' with a PKCS#12 file instead."
        )

    pfx_file = options.certificate_path
    if not pfx_file or not pfx_file.strip():
        raise StampingConfigurationError(
            "A certificate file must be specified when using sign mode 'pfx'."
        )
    if not os.path.isfile(pfx_file):
        raise StampResourceError(
            f"Signature certificate file '{pfx_file}' was not found."
        )

    passphrase = (options.password or '').encode('utf8')
    signer = signers.SimpleSigner.load_pkcs12(
        pfx_file=pfx_file, passphrase=passphrase or None
    )
    if signer is None:
        raise SignatureSetupError(
            f"Could not load key material from '{pfx_file}'. "
            f"Is the password correct?"
        )
    chain = _build_chain(signer)
    subject = signer.signing_cert.subject.human_friendly
    logger.debug(
        f"Loaded signing certificate for {subject} "
        f"with {len(chain) - 1} additional certificate(s)"
    )
    return SignatureContext(signer=signer, chain=chain)


def sign_document(
    document: StampingDocument,
    context: SignatureContext,
    options: SignatureOptions,
    output: BinaryIO,
):
    """
    Sign a stamped document and write the result to an output stream.

    This must be the last modification made to the document.

    :param document:
        The document to sign.
    :param context:
        The signing key material.
    :param options:
        Signature settings.
    :param output:
        The stream to write the signed document to.
    :raises SignatureSetupError:
        if the signature could not be produced.
    """
    if context.closed:
        raise SignatureSetupError("The signature context has been closed.")
    signature_meta = signers.PdfSignatureMetadata(
        field_name=options.field_name,
        md_algorithm=DIGEST_ALGORITHM,
        reason=options.reason,
        location=options.location,
        app_build_props=BuildProps(name=options.creator),
    )
    # invisible signature field on the last page
    new_field_spec = fields.SigFieldSpec(
        sig_field_name=options.field_name, on_page=-1
    )
    try:
        result = signers.sign_pdf(
            document.writer,
            signature_meta,
            signer=context.signer,
            new_field_spec=new_field_spec,
        )
    except SigningError as e:
        raise SignatureSetupError(
            f"Failed to sign '{document.name}': {e.msg}"
        ) from e
    # the signer needs a readable buffer to compute the digest
    buf = result.getbuffer()
    output.write(buf)
    buf.release()
    logger.debug(f"Signed '{document.name}' in field {options.field_name}")
