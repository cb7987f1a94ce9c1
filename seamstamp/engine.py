"""
The stamping engine.

A :class:`StampProcessor` runs one batch: it prepares all shared resources
(stamp bitmap, scale factor, signing key material) up front, and then
processes the input files one by one. For every file, the following steps
are taken:

1. open (and unlock) the document;
2. apply the seam stamp, if enabled;
3. apply the page stamps, if enabled;
4. sign the document, if enabled;
5. write the output, either next to the input or in place.

The first error aborts the batch.
"""

import logging
import os
import random
from typing import List, Optional

from . import atomic
from .bitmap import PreparedStamp, extract_slice, prepare_stamp, rotate_bitmap
from .document import StampingDocument, open_document
from .errors import DocumentError, StampingCancelled
from .geometry import (
    compute_page_position,
    compute_seam_position,
    scale_percent,
)
from .inputs import (
    compose_output_path,
    ensure_output_path_valid,
    resolve_input_files,
)
from .jitter import PositionJitter
from .options import StampingOptions
from .scope import resolve_page_stamp_pages, resolve_seam_pages
from .signing import SignatureContext, load_signature_context, sign_document
from .slicing import build_slice_plan, iter_batches
from .stamp import ImageStamp

__all__ = ['StampProcessor']

logger = logging.getLogger(__name__)


def _check_cancelled(cancel):
    if cancel is not None and cancel.is_set():
        raise StampingCancelled()


class StampProcessor:
    """
    Stamp a batch of PDF files.

    All resources are acquired when the processor is created, so that
    configuration and resource problems are reported before any file is
    touched. Use the processor as a context manager, or call :meth:`close`
    when done.

    :param options:
        The options for this batch.
    :param rng:
        Random number generator for the page stamp jitter.
    :param seed:
        Seed for the jitter's random number generator, if ``rng`` is not
        specified.
    :raises StampingError:
        if the options are inconsistent, or a required resource is missing.
    """

    def __init__(
        self,
        options: StampingOptions,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
    ):
        self.options = options
        self.input_files: List[str] = resolve_input_files(
            options.inputs, options.recursive
        )
        self._stamp: Optional[PreparedStamp] = prepare_stamp(
            options.stamp_image,
            white_to_transparent=options.white_to_transparent,
            opacity=options.opacity,
            rotation=options.rotation,
            keep_bounds=options.keep_bounds,
        )
        self.scale_percent = scale_percent(
            options.width_mm, self._stamp.original_width
        )
        try:
            self._signature_context: Optional[SignatureContext] = (
                load_signature_context(options.signature)
            )
        except Exception:
            self._stamp.close()
            raise
        self.jitter = PositionJitter(rng=rng, seed=seed)
        self._closed = False
        logger.debug(
            f"Stamp scaled to {self.scale_percent:.2f}% to achieve a width "
            f"of {options.width_mm} mm"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        """
        Release the stamp bitmap and the signing key material.
        Calling this method more than once has no effect.
        """
        if self._closed:
            return
        self._stamp.close()
        if self._signature_context is not None:
            self._signature_context.close()
        self._closed = True

    def _ensure_open(self):
        if self._closed:
            raise ValueError("This StampProcessor has been closed.")

    def execute(self, cancel=None) -> int:
        """
        Process all input files.

        :param cancel:
            Cancellation signal (e.g. a :class:`threading.Event`).
            It is checked before each file and before each stamp is applied.
        :return:
            The number of files processed.
        :raises StampingCancelled:
            if the cancellation signal was set.
        """
        self._ensure_open()
        options = self.options
        if not self.input_files:
            logger.info("No PDF files matched the provided input paths.")
            return 0

        if not options.in_place:
            os.makedirs(options.output_dir, exist_ok=True)

        processed = 0
        for input_path in self.input_files:
            _check_cancelled(cancel)
            if options.in_place:
                target = input_path
                logger.info(f"Stamping '{input_path}' (in place)")
            else:
                target = compose_output_path(
                    input_path, options.output_dir, options.output_suffix
                )
                ensure_output_path_valid(input_path, target, options.overwrite)
                logger.info(f"Stamping '{input_path}' -> '{target}'")
            # the input file must be closed again before it can be replaced
            with atomic.replacing(target) as temp_path:
                self.process_file(input_path, temp_path, cancel=cancel)
            processed += 1

        logger.info(f"Stamped {processed} file(s).")
        return processed

    def process_file(self, input_path: str, output_path: str, cancel=None):
        """
        Stamp a single file.

        :param input_path:
            The file to stamp.
        :param output_path:
            Where to write the result. Must be different from ``input_path``.
        :param cancel:
            Cancellation signal, see :meth:`execute`.
        """
        self._ensure_open()
        options = self.options
        with open_document(
            input_path,
            input_password=options.input_password,
            output_password=options.output_password,
        ) as document:
            if options.seam.enabled:
                self._apply_seam_stamp(document, cancel)
            if options.page_stamp.enabled:
                self._apply_page_stamp(document, cancel)
            try:
                outf = open(output_path, 'wb')
            except OSError as e:
                raise DocumentError(
                    f"Failed to open '{output_path}' for writing: {e}"
                ) from e
            with outf:
                if self._signature_context is not None:
                    sign_document(
                        document,
                        self._signature_context,
                        options.signature,
                        outf,
                    )
                else:
                    document.write(outf)

    def _apply_seam_stamp(self, document: StampingDocument, cancel):
        seam = self.options.seam
        page_count = document.page_count
        pages = resolve_seam_pages(seam, page_count)
        if len(pages) < 2:
            if len(pages) == 1:
                logger.warning(
                    f"Skipping seam stamping for '{document.name}': "
                    f"requires at least 2 pages."
                )
            return

        image = self._stamp.image
        plan = build_slice_plan(image.width, len(pages))
        for batch in iter_batches(len(pages), seam.max_slices_per_batch):
            for ix in batch:
                _check_cancelled(cancel)
                page_number = pages[ix]
                if not 1 <= page_number <= page_count:
                    continue
                seam_slice = plan[ix]
                slice_img = extract_slice(
                    image, seam_slice.start, seam_slice.width
                )
                if seam.side.is_horizontal:
                    rotated = rotate_bitmap(slice_img, 90, keep_bounds=False)
                    slice_img.close()
                    slice_img = rotated
                try:
                    stamp = ImageStamp(
                        document.writer, slice_img, self.scale_percent
                    )
                    metrics = document.page_metrics(page_number)
                    x, y = compute_seam_position(
                        seam.side,
                        seam.edge_offset_percent,
                        metrics.width,
                        metrics.height,
                        stamp.width,
                        stamp.height,
                    )
                    document.stamp(page_number, stamp, x, y, metrics=metrics)
                finally:
                    slice_img.close()
            logger.debug(
                f"Applied seam slices {batch.start + 1}-{batch.stop} of "
                f"{len(pages)} to '{document.name}'"
            )

    def _apply_page_stamp(self, document: StampingDocument, cancel):
        page_stamp = self.options.page_stamp
        page_count = document.page_count
        pages = resolve_page_stamp_pages(page_stamp, page_count)
        if not pages:
            return

        # embedded once, painted on every page
        stamp = ImageStamp(
            document.writer, self._stamp.image, self.scale_percent
        )
        for page_number in pages:
            _check_cancelled(cancel)
            if not 1 <= page_number <= page_count:
                continue
            metrics = document.page_metrics(page_number)
            x_ratio, y_ratio = page_stamp.position_for(page_number)
            rotation = 0
            if page_stamp.randomize_per_page:
                jittered = self.jitter.perturb(x_ratio, y_ratio)
                x_ratio, y_ratio = jittered.x, jittered.y
                rotation = jittered.rotation
            width, height = stamp.bounding_box(rotation)
            x, y = compute_page_position(
                x_ratio, y_ratio, metrics.width, metrics.height, width, height
            )
            document.stamp(
                page_number, stamp, x, y, metrics=metrics, rotation=rotation
            )
        logger.debug(
            f"Applied page stamp to {len(pages)} page(s) of '{document.name}'"
        )
