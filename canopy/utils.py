"""
Canopy utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the parameter, context, parser and command layers.

Overview
- UnsetType / Unset
  • Singleton sentinel meaning “not provided”, kept distinct from None.
  • Falsey, printable as "Unset", non-subclassable.

- coalesce(value, default=None)
  • Replace Unset with a concrete default while preserving None/0/""/[].

- rename(callable, name) / @rename("name")
  • Assign stable __name__/__qualname__ to generated callables.

- mirror("attr")
  • Read-only property exposing a copy of the private backing field self._attr.

- normalize_envvar(identifier) / join_envvar(prefix, identifier)
  • Turn command and option identifiers into environment variable names.

- ordinal(number)
  • Human-friendly position labels for parser messages ("first", "12th").

- first_sentence(text)
  • Short help summaries for subcommand listings.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> normalize_envvar("remote-add")
    'REMOTE_ADD'
    >>> join_envvar("GIT", "remote add")
    'GIT_REMOTE_ADD'
"""
import builtins
import functools
import re
from collections.abc import Sequence, Mapping, Set
from typing import final


@final
class UnsetType:
    """
    Internal sentinel type representing a value that was not provided.

    Characteristics
    - Boolean-false: bool(Unset) is False, but it is distinct from None and 0.
    - Printable: repr(Unset) -> "Unset".
    - Non-subclassable and singleton per process.
    """

    def __or__(self, other, /):
        """
        Support PEP 604 unions in isinstance checks (e.g., str | Unset).
        """
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Resolve the Unset sentinel to a concrete default.

    Falsey values like None, 0, "" or [] are preserved; only Unset is replaced.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set a stable __name__/__qualname__ on a callable, or return a decorator
    that will do so later.

    Forms
    - rename(callable, name) -> callable (updated in place)
    - rename(name) -> decorator
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _copied(object):
    """
    Shallow container copy used by mirror().

    Sequences (non-string) become tuples, mappings become dicts, sets become
    frozensets; anything else is returned as-is.
    """
    if isinstance(object, Sequence) and not isinstance(object, str):
        return tuple(object)
    elif isinstance(object, Mapping):
        return dict(object)
    elif isinstance(object, Set):
        return frozenset(object)
    return object


def mirror(name, /):
    """
    Define a read-only property that mirrors a private backing attribute.

    The property reads "_{name}" from the instance and hands out a copy for
    container types, so registries can only be mutated through the owning
    object's methods.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _copied(getattr(self, "_" + name))

    return property(getter)


def normalize_envvar(identifier, /):
    """
    Normalize an identifier into an environment variable fragment.

    The identifier is uppercased (ASCII only) and every run of characters
    outside [0-9A-Za-z] collapses into a single underscore.

    Examples
    - normalize_envvar("child")       -> "CHILD"
    - normalize_envvar("remote--add") -> "REMOTE_ADD"
    - normalize_envvar("db.url")      -> "DB_URL"
    """
    if not isinstance(identifier, str):
        raise TypeError("normalize_envvar() argument must be a string")
    return re.sub(r"[^0-9A-Za-z]+", "_", identifier).upper()


def join_envvar(prefix, identifier, /):
    """
    Derive a child environment prefix from a parent prefix and an identifier.

    - join_envvar("APP", "sub") -> "APP_SUB"
    - join_envvar(None, "sub")  -> "SUB"
    """
    if prefix:
        return prefix + "_" + normalize_envvar(identifier)
    return normalize_envvar(identifier)


@functools.cache
def ordinal(number, /):
    """
    Return a human-friendly ordinal label for a 1-based position.

    - 1..10 are rendered as words ("first"…"tenth").
    - Other numbers use numeric ordinals with English suffixes.
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    # 11th, 12th, 13th (and 111th, 112th, 113th, …)
    if 10 < number % 100 < 20:
        return f"{number}th"

    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


def first_sentence(text, /):
    """
    Return the text up to its first sentence terminator ('.' or newline), stripped.
    """
    return re.split(r"[.\n]", text or "", maxsplit=1)[0].strip()


__all__ = (
    "UnsetType",
    "Unset",
    "coalesce",
    "rename",
    "mirror",
    "normalize_envvar",
    "join_envvar",
    "ordinal",
    "first_sentence",
)
