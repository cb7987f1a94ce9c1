"""
Configuration for a stamping run.

All option classes are frozen dataclasses that validate themselves on
construction. They can also be populated from user-provided configuration
(e.g. a YAML file) through
:meth:`~pyhanko.config.api.ConfigurableMixin.from_config`, in which case
hyphens in key names are converted to underscores.

.. note::
    Page numbers are 1-based throughout this module, matching what a user
    sees in a PDF viewer.
"""

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple, Type, TypeVar

from pyhanko.config.api import ConfigurableMixin

from .errors import StampingConfigurationError

__all__ = [
    'SeamSide',
    'SeamScope',
    'PageStampScope',
    'SignatureMode',
    'SeamStampOptions',
    'PageStampOptions',
    'SignatureOptions',
    'StampingOptions',
    'parse_page_list',
    'parse_position',
    'parse_position_map',
    'parse_percentage',
    'parse_ratio',
]

E = TypeVar('E', bound=enum.Enum)


def _parse_enum(
    enum_cls: Type[E], value, what: str, aliases: Optional[dict] = None
) -> E:
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        raise StampingConfigurationError(
            f"{what} must be specified as a string, not {type(value)}."
        )
    spec = value.strip().lower()
    if aliases and spec in aliases:
        return aliases[spec]
    try:
        return enum_cls(spec)
    except ValueError:
        valid = ', '.join(m.value for m in enum_cls)
        raise StampingConfigurationError(
            f"Unknown {what} '{value}'. Valid values: {valid}."
        )


class SeamSide(enum.Enum):
    """Page edge along which the seam stamp is placed."""

    LEFT = 'left'
    RIGHT = 'right'
    TOP = 'top'
    BOTTOM = 'bottom'

    @classmethod
    def parse(cls, value) -> 'SeamSide':
        return _parse_enum(cls, value, 'seam side')

    @property
    def is_horizontal(self) -> bool:
        """``True`` for the top and bottom edges."""
        return self in (SeamSide.TOP, SeamSide.BOTTOM)


class SeamScope(enum.Enum):
    """Pages participating in seam stamping."""

    NONE = 'none'
    ALL = 'all'
    ODD = 'odd'
    EVEN = 'even'
    CUSTOM = 'custom'

    @classmethod
    def parse(cls, value) -> 'SeamScope':
        return _parse_enum(cls, value, 'seam scope')


class PageStampScope(enum.Enum):
    """Pages receiving a page stamp."""

    NONE = 'none'
    ALL = 'all'
    SKIP_FIRST = 'skip-first'
    SKIP_LAST = 'skip-last'
    CUSTOM = 'custom'

    @classmethod
    def parse(cls, value) -> 'PageStampScope':
        return _parse_enum(cls, value, 'page scope')


class SignatureMode(enum.Enum):
    """How signing credentials are provisioned."""

    NONE = 'none'
    SELF_SIGNED = 'self-signed'
    CUSTOM_CERTIFICATE = 'custom-certificate'

    @classmethod
    def parse(cls, value) -> 'SignatureMode':
        return _parse_enum(
            cls,
            value,
            'sign mode',
            aliases={
                'self': SignatureMode.SELF_SIGNED,
                'selfsigned': SignatureMode.SELF_SIGNED,
                'pfx': SignatureMode.CUSTOM_CERTIFICATE,
                'custom': SignatureMode.CUSTOM_CERTIFICATE,
            },
        )


def _check_ratio(value, name: str) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise StampingConfigurationError(f"Invalid ratio '{value}'.")
    if not 0 <= value <= 1:
        raise StampingConfigurationError(
            f"{name} must be between 0 and 1, not {value}."
        )
    return value


def _check_pages(pages: Iterable, what: str) -> Tuple[int, ...]:
    result = []
    for page in pages:
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise StampingConfigurationError(
                f"Invalid page number '{page}' in {what}. "
                f"Page numbers must be >= 1."
            )
        result.append(page)
    return tuple(result)


def parse_page_list(value: str) -> Tuple[int, ...]:
    """
    Parse a comma-separated list of page numbers, e.g. ``1,3,5``.

    :param value:
        The string to parse.
    :return:
        A tuple of page numbers, in the order given.
    :raises StampingConfigurationError:
        if one of the entries is not an integer ``>= 1``.
    """
    pages = []
    for segment in value.split(','):
        segment = segment.strip()
        if not segment:
            continue
        try:
            page = int(segment)
        except ValueError:
            page = 0
        if page < 1:
            raise StampingConfigurationError(
                f"Invalid page number '{segment}'. Page numbers must be >= 1."
            )
        pages.append(page)
    return tuple(pages)


def parse_position(value: str) -> Tuple[float, float]:
    """
    Parse a relative position of the form ``x,y``, with both coordinates
    between ``0`` and ``1``.
    """
    parts = [p.strip() for p in value.split(',') if p.strip()]
    try:
        x, y = (float(p) for p in parts)
    except ValueError:
        raise StampingConfigurationError(
            f"Invalid position '{value}'. "
            f"Expected 'x,y' with values between 0 and 1."
        )
    return _check_ratio(x, 'x'), _check_ratio(y, 'y')


def parse_position_map(value: str) -> Dict[int, Tuple[float, float]]:
    """
    Parse per-page positions of the form ``page@x,y;page@x,y``,
    e.g. ``1@0.5,0.2;5@0.6,0.3``.

    Later entries for the same page override earlier ones.
    """
    result = {}
    for entry in value.split(';'):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split('@')
        if len(parts) != 2:
            raise StampingConfigurationError(
                f"Invalid custom position entry '{entry}', "
                f"expected format 'page@x,y'."
            )
        page_spec, coords = parts
        try:
            page = int(page_spec)
        except ValueError:
            page = 0
        if page < 1:
            raise StampingConfigurationError(
                f"Invalid page number '{page_spec}' in custom position "
                f"entry '{entry}'."
            )
        result[page] = parse_position(coords)
    return result


def parse_percentage(value) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise StampingConfigurationError(
            f"Invalid percentage value '{value}'."
        )
    if not 0 <= result <= 100:
        raise StampingConfigurationError(
            "Percentage must be between 0 and 100."
        )
    return result


def parse_ratio(value) -> float:
    return _check_ratio(value, 'Ratio')


def _process_page_list_entry(config_dict, key):
    try:
        spec = config_dict[key]
    except KeyError:
        return
    if isinstance(spec, str):
        config_dict[key] = parse_page_list(spec)
    elif isinstance(spec, int):
        config_dict[key] = (spec,)


@dataclass(frozen=True)
class SeamStampOptions(ConfigurableMixin):
    """
    Settings for the seam stamp, i.e. the stamp image sliced across a run
    of pages.
    """

    scope: SeamScope = SeamScope.NONE
    """
    Pages that participate in seam stamping.
    """

    custom_pages: Tuple[int, ...] = ()
    """
    Pages to use with :attr:`SeamScope.CUSTOM`.
    """

    side: SeamSide = SeamSide.RIGHT
    """
    Page edge along which the slices are placed.
    """

    edge_offset_percent: float = 50.0
    """
    Offset along the edge, as a percentage between ``0`` and ``100``.
    For the left and right edges, ``0`` is the top of the page; for the top
    and bottom edges, ``0`` is the left edge of the page.
    """

    max_slices_per_batch: int = 20
    """
    Maximum number of slices to process in one batch.
    """

    def __post_init__(self):
        object.__setattr__(self, 'scope', SeamScope.parse(self.scope))
        object.__setattr__(self, 'side', SeamSide.parse(self.side))
        object.__setattr__(
            self,
            'custom_pages',
            _check_pages(self.custom_pages, 'seam pages'),
        )
        object.__setattr__(
            self,
            'edge_offset_percent',
            parse_percentage(self.edge_offset_percent),
        )
        if not isinstance(self.max_slices_per_batch, int) or (
            self.max_slices_per_batch < 1
        ):
            raise StampingConfigurationError(
                "The maximum number of seam slices per batch must be a "
                "positive integer."
            )
        if self.scope == SeamScope.CUSTOM and not self.custom_pages:
            raise StampingConfigurationError(
                "Seam scope 'custom' requires at least one page number."
            )

    @property
    def enabled(self) -> bool:
        return self.scope != SeamScope.NONE

    @classmethod
    def process_entries(cls, config_dict):
        super().process_entries(config_dict)
        _process_page_list_entry(config_dict, 'custom_pages')


@dataclass(frozen=True)
class PageStampOptions(ConfigurableMixin):
    """
    Settings for the regular (unsliced) page stamp.
    """

    scope: PageStampScope = PageStampScope.NONE
    """
    Pages that receive a page stamp.
    """

    custom_pages: Tuple[int, ...] = ()
    """
    Pages to use with :attr:`PageStampScope.CUSTOM`.
    """

    position_x: float = 0.5
    """
    Default horizontal position, as a ratio measured from the left edge.
    """

    position_y: float = 0.5
    """
    Default vertical position, as a ratio measured from the bottom edge.
    """

    per_page_positions: Mapping[int, Tuple[float, float]] = field(
        default_factory=dict
    )
    """
    Position overrides for individual pages.
    """

    randomize_per_page: bool = False
    """
    Apply a small random offset and rotation to each page stamp, to make
    the stamps look like they were applied by hand.
    """

    def __post_init__(self):
        object.__setattr__(self, 'scope', PageStampScope.parse(self.scope))
        object.__setattr__(
            self,
            'custom_pages',
            _check_pages(self.custom_pages, 'page list'),
        )
        object.__setattr__(
            self, 'position_x', _check_ratio(self.position_x, 'position x')
        )
        object.__setattr__(
            self, 'position_y', _check_ratio(self.position_y, 'position y')
        )
        positions = {}
        for page, coords in dict(self.per_page_positions).items():
            (page,) = _check_pages((page,), 'position map')
            try:
                x, y = coords
            except (TypeError, ValueError):
                raise StampingConfigurationError(
                    f"Position override for page {page} must be an "
                    f"(x, y) pair."
                )
            positions[page] = (
                _check_ratio(x, 'position x'),
                _check_ratio(y, 'position y'),
            )
        object.__setattr__(
            self, 'per_page_positions', MappingProxyType(positions)
        )
        if self.scope == PageStampScope.CUSTOM and not self.custom_pages:
            raise StampingConfigurationError(
                "Page stamp scope 'custom' requires at least one page number."
            )

    @property
    def enabled(self) -> bool:
        return self.scope != PageStampScope.NONE

    def position_for(self, page_number: int) -> Tuple[float, float]:
        """
        Return the position ratios for a page, taking overrides into account.
        """
        try:
            return self.per_page_positions[page_number]
        except KeyError:
            return self.position_x, self.position_y

    @classmethod
    def process_entries(cls, config_dict):
        super().process_entries(config_dict)
        _process_page_list_entry(config_dict, 'custom_pages')
        try:
            pos_map = config_dict['per_page_positions']
        except KeyError:
            return
        if isinstance(pos_map, str):
            config_dict['per_page_positions'] = parse_position_map(pos_map)
        elif isinstance(pos_map, dict):
            config_dict['per_page_positions'] = {
                int(k): (
                    parse_position(v) if isinstance(v, str) else tuple(v)
                )
                for k, v in pos_map.items()
            }

    @classmethod
    def from_config(cls, config_dict):
        # 'position' is a shorthand for position-x/position-y, so it has to
        # be accepted before the key check in the mixin
        if not isinstance(config_dict, dict) or 'position' not in config_dict:
            return super().from_config(config_dict)
        config_dict = dict(config_dict)
        position = config_dict.pop('position')
        if isinstance(position, str):
            position = parse_position(position)
        try:
            config_dict['position-x'], config_dict['position-y'] = position
        except (TypeError, ValueError):
            raise StampingConfigurationError(
                f"Invalid position '{position}'. Expected an (x, y) pair."
            )
        return super().from_config(config_dict)


@dataclass(frozen=True)
class SignatureOptions(ConfigurableMixin):
    """
    Settings for the digital signature applied after stamping.
    """

    mode: SignatureMode = SignatureMode.NONE
    """
    Signature mode. Only :attr:`SignatureMode.CUSTOM_CERTIFICATE`
    is actually supported for signing.
    """

    certificate_path: Optional[str] = None
    """
    Path to a PKCS#12 file containing the signer's key and certificate chain.
    """

    password: Optional[str] = None
    """
    Password for the PKCS#12 file.
    """

    self_signed_subject: str = 'CN=SeamStamp'
    """
    Subject for a self-signed certificate. Self-signed certificate issuance
    is not supported, so this value is informational only.
    """

    field_name: str = 'SeamStampSignature'
    """
    Name of the (invisible) signature field to create.
    """

    creator: str = 'SeamStamp'
    """
    Name of the application recorded in the signature's build properties.
    """

    reason: Optional[str] = None
    location: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'mode', SignatureMode.parse(self.mode))

    @property
    def enabled(self) -> bool:
        return self.mode != SignatureMode.NONE


@dataclass(frozen=True)
class StampingOptions(ConfigurableMixin):
    """
    Immutable configuration for one batch run.
    """

    inputs: Tuple[str, ...] = ()
    """
    PDF files and/or directories to process.
    """

    output_dir: Optional[str] = None
    """
    Directory to write stamped files to. If not specified, the input files
    are replaced in place.
    """

    recursive: bool = False
    """
    Descend into subdirectories of input directories.
    """

    overwrite: bool = False
    """
    Overwrite existing files in the output directory.
    """

    output_suffix: str = '_stamped'
    """
    Suffix appended to the output file names when writing to
    :attr:`output_dir`.
    """

    stamp_image: Optional[str] = None
    """
    Path to the stamp image.
    """

    white_to_transparent: bool = True
    """
    Turn near-white pixels transparent, unless the image format supports
    transparency by itself.
    """

    width_mm: float = 40.0
    """
    Target width of the (unrotated) stamp, in millimetres.
    """

    rotation: int = 0
    """
    Rotation applied to the stamp image before stamping, in degrees
    (clockwise).
    """

    keep_bounds: bool = True
    """
    Keep the original image width when rotating the stamp image.
    """

    opacity: int = 100
    """
    Stamp opacity, as a percentage.
    """

    input_password: Optional[str] = None
    """
    Password to unlock encrypted input documents.
    """

    output_password: Optional[str] = None
    """
    Password to encrypt the output documents with.
    Cannot be combined with signing.
    """

    seam: SeamStampOptions = field(default_factory=SeamStampOptions)
    page_stamp: PageStampOptions = field(default_factory=PageStampOptions)
    signature: SignatureOptions = field(default_factory=SignatureOptions)

    def __post_init__(self):
        inputs = self.inputs
        if isinstance(inputs, str):
            inputs = (inputs,)
        object.__setattr__(self, 'inputs', tuple(inputs))
        if not self.output_dir or not str(self.output_dir).strip():
            object.__setattr__(self, 'output_dir', None)

        if not self.stamp_image or not str(self.stamp_image).strip():
            raise StampingConfigurationError(
                "Stamp image path must be specified."
            )
        try:
            width = float(self.width_mm)
        except (TypeError, ValueError):
            width = 0
        if width <= 0:
            raise StampingConfigurationError(
                "Stamp width must be greater than zero."
            )
        object.__setattr__(self, 'width_mm', width)
        if not isinstance(self.rotation, int):
            raise StampingConfigurationError(
                "Stamp rotation must be an integer number of degrees."
            )
        if not isinstance(self.opacity, int) or not 0 <= self.opacity <= 100:
            raise StampingConfigurationError(
                "Stamp opacity must be an integer between 0 and 100."
            )
        if self.signature.enabled and self.output_password:
            raise StampingConfigurationError(
                "Output encryption cannot be combined with digital "
                "signatures."
            )

    @property
    def in_place(self) -> bool:
        """
        Whether the input files are replaced in place.
        """
        return self.output_dir is None

    @classmethod
    def process_entries(cls, config_dict):
        super().process_entries(config_dict)
        inputs = config_dict.get('inputs')
        if isinstance(inputs, list):
            config_dict['inputs'] = tuple(inputs)
        for key, section_cls in _SECTIONS.items():
            section = config_dict.get(key)
            if isinstance(section, dict):
                config_dict[key] = section_cls.from_config(section)
            elif section is None and key in config_dict:
                # an empty section in YAML means "all defaults"
                del config_dict[key]


_SECTIONS = {
    'seam': SeamStampOptions,
    'page_stamp': PageStampOptions,
    'signature': SignatureOptions,
}
