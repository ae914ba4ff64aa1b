"""
Collections component - per-collection policy and the collection registry.

A CollectionDefinition declares what a collection may contain. It is
configured once, through chained setters, when the registry resolves it, and
is frozen afterwards.

Invariants:
- Extensions and MIME types are syntax-checked at configuration time and
  stored lowercase; bad values raise InvalidArgumentError
- single_file_collection() implies an effective max of one item
- Setting an authorization check makes the collection private
- A frozen definition refuses every setter
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from assetdock.components.paths import DefaultPathGenerator
from assetdock.core.entities import Visibility
from assetdock.core.errors import InvalidArgumentError

from .models import AuthorizationCheck, VariantRegistration, VariantTransform

if TYPE_CHECKING:
    from assetdock.components.paths import PathGenerator
    from assetdock.core.entities import Asset
    from assetdock.rules.models import CollectionRules

logger = logging.getLogger(__name__)

EXTENSION_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")
MIME_TYPE_PATTERN = re.compile(r"^[\w\-+]+/[\w\-+.]+$")
VARIANT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")


class CollectionDefinition:
    """Policy for one named collection."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._visibility = Visibility.PUBLIC
        self._allowed_extensions: set[str] = set()
        self._allowed_mime_types: set[str] = set()
        self._max_file_size = 0
        self._max_items: int | None = None
        self._single_file = False
        self._path_generator: PathGenerator | None = None
        self._variants: dict[str, VariantRegistration] = {}
        self._authorizer: AuthorizationCheck | None = None
        self._frozen = False

    # --- Setters (chainable, configuration time only) ---

    def allowed_extensions(self, *extensions: str) -> CollectionDefinition:
        self._check_mutable()
        for ext in extensions:
            if not isinstance(ext, str) or not EXTENSION_PATTERN.match(ext):
                raise InvalidArgumentError(
                    f'Invalid extension "{ext}": use letters and digits only, without a dot'
                )
            self._allowed_extensions.add(ext.lower())
        return self

    def allowed_mime_types(self, *mime_types: str) -> CollectionDefinition:
        self._check_mutable()
        for mime in mime_types:
            if not isinstance(mime, str) or not MIME_TYPE_PATTERN.match(mime):
                raise InvalidArgumentError(f'Invalid MIME type "{mime}": expected type/subtype')
            self._allowed_mime_types.add(mime.lower())
        return self

    def only_keep_latest(self, n: int) -> CollectionDefinition:
        self._check_mutable()
        if isinstance(n, bool) or not isinstance(n, int) or n < 1:
            raise InvalidArgumentError(f"only_keep_latest expects a positive integer, got {n!r}")
        self._max_items = n
        return self

    def set_max_file_size(self, size: int) -> CollectionDefinition:
        """Max size in bytes; 0 means unrestricted."""
        self._check_mutable()
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise InvalidArgumentError(f"Max file size must be a non-negative integer, got {size!r}")
        self._max_file_size = size
        return self

    def single_file_collection(self) -> CollectionDefinition:
        self._check_mutable()
        self._single_file = True
        self._max_items = 1
        return self

    def set_path_generator(self, generator: PathGenerator) -> CollectionDefinition:
        self._check_mutable()
        self._path_generator = generator
        return self

    def set_visibility(self, visibility: Visibility | str) -> CollectionDefinition:
        self._check_mutable()
        try:
            self._visibility = Visibility(visibility)
        except ValueError as e:
            raise InvalidArgumentError(f"Unknown visibility {visibility!r}") from e
        return self

    def add_variant(
        self,
        name: str,
        transform: VariantTransform,
        extension: str | None = None,
    ) -> CollectionDefinition:
        """Register a named transform; the job invokes it by name."""
        self._check_mutable()
        if not isinstance(name, str) or not VARIANT_NAME_PATTERN.match(name):
            raise InvalidArgumentError(f"Invalid variant name {name!r}")
        if name in self._variants:
            raise InvalidArgumentError(f'Variant "{name}" is already registered')
        if not callable(transform):
            raise InvalidArgumentError(f'Variant "{name}" transform is not callable')
        if extension is not None and not EXTENSION_PATTERN.match(extension):
            raise InvalidArgumentError(f'Invalid extension "{extension}" for variant "{name}"')
        self._variants[name] = VariantRegistration(
            name=name,
            transform=transform,
            extension=extension.lower() if extension else None,
        )
        return self

    def authorize_with(self, check: AuthorizationCheck) -> CollectionDefinition:
        """Gate downloads behind a predicate. Makes the collection private."""
        self._check_mutable()
        self._authorizer = check
        self._visibility = Visibility.PRIVATE
        return self

    def freeze(self) -> CollectionDefinition:
        self._frozen = True
        return self

    # --- Getters ---

    def get_visibility(self) -> Visibility:
        return self._visibility

    def is_private(self) -> bool:
        return self._visibility == Visibility.PRIVATE

    def get_allowed_extensions(self) -> frozenset[str]:
        return frozenset(self._allowed_extensions)

    def get_allowed_mime_types(self) -> frozenset[str]:
        return frozenset(self._allowed_mime_types)

    def get_max_file_size(self) -> int:
        return self._max_file_size

    def get_max_items(self) -> int | None:
        if self._single_file:
            return 1
        return self._max_items

    def is_single_file_collection(self) -> bool:
        return self.get_max_items() == 1

    def get_path_generator(self) -> PathGenerator:
        if self._path_generator is None:
            raise InvalidArgumentError(f'Collection "{self.name}" has no path generator')
        return self._path_generator

    def has_path_generator(self) -> bool:
        return self._path_generator is not None

    def get_variants(self) -> list[VariantRegistration]:
        return list(self._variants.values())

    def get_variant(self, name: str) -> VariantRegistration | None:
        return self._variants.get(name)

    def is_authorizable(self) -> bool:
        return self._authorizer is not None

    def check_authorization(self, asset: Asset) -> bool:
        if self._authorizer is None:
            return True
        return bool(self._authorizer(asset))

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise InvalidArgumentError(
                f'Collection "{self.name}" is already resolved and cannot be changed'
            )


CollectionFactory = Callable[..., CollectionDefinition]


class CollectionRegistry:
    """
    Maps stable collection identifiers to definition factories.

    Definitions are built once per (identifier, args) and cached frozen.
    """

    def __init__(self, default_path_generator: PathGenerator | None = None) -> None:
        self._default_path_generator = default_path_generator or DefaultPathGenerator()
        self._factories: dict[str, CollectionFactory] = {}
        self._resolved: dict[tuple[str, str], CollectionDefinition] = {}

    @property
    def default_path_generator(self) -> PathGenerator:
        return self._default_path_generator

    def register(self, ref: str, factory: CollectionFactory | CollectionDefinition) -> None:
        if not ref:
            raise InvalidArgumentError("Collection identifier must not be empty")
        if ref in self._factories:
            raise InvalidArgumentError(f'Collection "{ref}" is already registered')

        if isinstance(factory, CollectionDefinition):
            definition = factory
            self._factories[ref] = lambda *args: definition
        elif callable(factory):
            self._factories[ref] = factory
        else:
            raise InvalidArgumentError(f'Collection "{ref}" factory is not callable')
        logger.debug("Registered collection %s", ref)

    def has(self, ref: str) -> bool:
        return ref in self._factories

    def refs(self) -> list[str]:
        return sorted(self._factories)

    def resolve(self, ref: str, *args: Any) -> CollectionDefinition:
        factory = self._factories.get(ref)
        if factory is None:
            raise InvalidArgumentError(f'Collection "{ref}" is not registered')

        key = (ref, json.dumps(list(args), sort_keys=True, default=str))
        cached = self._resolved.get(key)
        if cached is not None:
            return cached

        definition = factory(*args)
        if not isinstance(definition, CollectionDefinition):
            raise InvalidArgumentError(f'Collection "{ref}" factory returned {type(definition)!r}')
        if not definition.name:
            definition.name = ref
        if not definition.has_path_generator():
            definition.set_path_generator(self._default_path_generator)
        definition.freeze()

        self._resolved[key] = definition
        return definition

    def register_from_rules(self, collections: dict[str, CollectionRules]) -> None:
        """Register collections declared in the rules file."""
        for ref, cfg in collections.items():
            self.register(ref, definition_from_rules(ref, cfg))


def definition_from_rules(ref: str, cfg: CollectionRules) -> CollectionDefinition:
    definition = (
        CollectionDefinition(ref)
        .set_visibility(cfg.visibility)
        .allowed_extensions(*cfg.allowed_extensions)
        .allowed_mime_types(*cfg.allowed_mime_types)
        .set_max_file_size(cfg.max_file_size)
    )
    if cfg.single_file:
        definition.single_file_collection()
    elif cfg.keep_latest is not None:
        definition.only_keep_latest(cfg.keep_latest)
    return definition

