r"""
Canopy parameter specifications.

Overview
- Specs
  • Option: named, value-bearing switch with one or more aliases (e.g., -o/--output).
  • Flag: named, presence-only switch (no payload), e.g., -v/--verbose.
  • Argument: positional, value-bearing parameter (fixed arity or variadic with nargs=-1).
  • HelpOption / VersionOption: eager flags that stop the run with a signal.

- Factories
  • help_option(names, message): the option synthesized by context construction.
  • version_option(version, *names): prints "<prog> version <version>" and exits.

- Help metadata
  • OptionHelp, ArgumentHelp, SubcommandHelp: plain records handed to the help
    formatter; parameter_help is None for hidden parameters.

Binding
- Specs are descriptors. Declared as class attributes of a Command they are
  named after the attribute (an Option without names becomes --attribute) and
  reading the attribute on an instance returns the parsed value, or the
  default before parsing.
- Function commands bind specs to their parameter names via bind().

Validation highlights
- Names must match r"--?[^\W\d_](-?[^\W_]+)*" and be unique within a spec.
- Option nargs must be a positive int; Argument nargs a positive int or -1.
- choices may be any iterable; duplicates are rejected unless given as a set.

Quick example:
    >>> class Greet(Command):
    ...     count = Option("-c", "--count", type=int, default=1)
    ...     loud = Flag("--loud")
    ...     who = Argument()
    ...     def run(self):
    ...         print(("HELLO %s" if self.loud else "hello %s") % self.who * self.count)
"""
import os
import re
import warnings
from collections import namedtuple
from collections.abc import Iterable, Set

from .faults import *
from .utils import *

OptionHelp = namedtuple("OptionHelp", ("names", "metavar", "help"))
ArgumentHelp = namedtuple("ArgumentHelp", ("name", "help", "required", "repeatable"))
SubcommandHelp = namedtuple("SubcommandHelp", ("name", "help"))

_SWITCH = re.compile(r"--?[^\W\d_](-?[^\W_]+)*")

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


def _sort_names(names):
    # short names first, then long names, each group alphabetical
    return tuple(sorted(names, key=lambda name: (name.startswith("--"), len(name) > 2, name)))


class Parameter:
    """
    Shared behavior of options and arguments: help text, conversion, choices,
    descriptor access to parsed values.
    """
    eager = False

    def __init__(self, *, help="", type=str, default=None, choices=Unset, hidden=False):
        if not isinstance(help, str):
            raise TypeError(f"{self._typename} 'help' must be a string")
        if not callable(type):
            raise TypeError(f"{self._typename} 'type' must be callable")
        if choices is not Unset:
            if not isinstance(choices, Iterable) or isinstance(choices, str):
                raise TypeError(f"{self._typename} 'choices' must be an iterable")
            items = tuple(sorted(choices, key=str)) if isinstance(choices, Set) else tuple(choices)
            if not isinstance(choices, Set) and len(items) != len(set(items)):
                raise ValueError(f"{self._typename} 'choices' cannot contain duplicates")
            choices = items
        self.help = help.strip()
        self.type = type
        self.default = default
        self.choices = choices
        self.hidden = bool(hidden)
        self.attribute = None

    @property
    def _typename(self):
        return type(self).__name__.lower()

    @property
    def display(self):
        raise NotImplementedError

    def bind(self, name, /):
        """
        Name this spec after the attribute or function parameter holding it.
        """
        if self.attribute is None:
            self.attribute = name
        return self

    def __set_name__(self, owner, name):
        self.bind(name)

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return getattr(instance, "_values", {}).get(self, self.default)

    def convert(self, context, raw, /):
        """
        Convert one raw token with self.type and check it against choices.

        Raises
        - BadParameterValue: when the converter raises ValueError/TypeError.
        - InvalidChoice: when the converted value is not an allowed choice.
        """
        try:
            value = self.type(raw)
        except (ValueError, TypeError) as exception:
            raise BadParameterValue(
                "invalid value for %r: %r" % (self.display, raw),
                hint=str(exception) or Unset,
                context=context,
                parameter=self,
                input=raw,
            ) from None
        if self.choices is not Unset and value not in self.choices:
            raise InvalidChoice(
                "invalid choice %r for %r" % (raw, self.display),
                hint="choose from %s" % ", ".join(map(repr, map(str, self.choices))),
                context=context,
                parameter=self,
                input=raw,
            )
        return value


class Option(Parameter):
    def __init__(
            self,
            *names,
            help="",
            metavar=Unset,
            type=str,
            nargs=1,
            default=None,
            required=False,
            envvar=Unset,
            choices=Unset,
            hidden=False,
    ):
        super().__init__(help=help, type=type, default=default, choices=choices, hidden=hidden)
        seen = set()
        for name in names:
            if not isinstance(name, str):
                raise TypeError(f"{self._typename} names must be strings")
            if not _SWITCH.fullmatch(name):
                raise ConfigurationError(f"{self._typename} name {name!r} is not a valid switch")
            if name in seen:
                raise ConfigurationError(f"{self._typename} name {name!r} is repeated")
            seen.add(name)
        if not isinstance(nargs, int) or isinstance(nargs, bool) or nargs < self._minimum:
            raise ConfigurationError(f"{self._typename} 'nargs' must be an integer of at least {self._minimum}")
        if not isinstance(metavar, str | Unset):
            raise TypeError(f"{self._typename} 'metavar' must be a string")
        if not isinstance(envvar, str | Unset):
            raise TypeError(f"{self._typename} 'envvar' must be a string")
        self._names = _sort_names(names)
        self.nargs = nargs
        self.required = bool(required)
        self.envvar = coalesce(envvar)
        if metavar is Unset and choices is not Unset:
            metavar = "[%s]" % "|".join(map(str, self.choices))
        self.metavar = coalesce(metavar, "VALUE")

    _minimum = 1

    @property
    def names(self):
        return self._names

    @property
    def longest(self):
        return max(self._names, key=len)

    @property
    def display(self):
        return self.longest

    def bind(self, name, /):
        if not self._names:
            self._names = ("--" + re.sub(r"_+", "-", name.lower().strip("_")),)
        return super().bind(name)

    @property
    def parameter_help(self):
        if self.hidden:
            return None
        return OptionHelp(self._names, self.metavar if self.nargs else None, self.help)

    def envvar_for(self, command, /):
        """
        Return the environment variable read when the option is absent from argv.

        An explicit envvar wins; otherwise the command's auto prefix is joined
        with the option's longest name. None when neither applies, and always
        for eager options, which only act when matched on the command line.
        """
        if self.eager:
            return None
        if self.envvar:
            return self.envvar
        if command.auto_envvar_prefix:
            return join_envvar(command.auto_envvar_prefix, self.longest.lstrip("-"))
        return None

    def process(self, context, raw, /):
        """
        Convert the tokens of one occurrence into the option's value.
        """
        if self.nargs == 1:
            return self.convert(context, raw[0])
        return tuple(self.convert(context, token) for token in raw)

    def from_envvar(self, context, raw, envvar, /):
        if self.nargs == 1:
            return self.convert(context, raw)
        tokens = raw.split()
        if len(tokens) != self.nargs:
            raise IncorrectOptionNargs(
                "environment variable %s must hold %d values for %r" % (envvar, self.nargs, self.display),
                context=context,
                parameter=self,
            )
        return self.process(context, tokens)

    def resolve(self, context, occurrences, /):
        """
        Produce the final value: last command-line occurrence, then the
        environment, then the default.

        Raises
        - MissingParameter: when the option is required and no source provided it.
        """
        if occurrences:
            return self.process(context, occurrences[-1])

        if envvar := self.envvar_for(context.command):
            raw = os.environ.get(envvar)
            if raw:
                return self.from_envvar(context, raw, envvar)
            if raw is not None:
                warnings.warn(EmptyEnvvarWarning(
                    "environment variable %s is empty, ignoring it for %r" % (envvar, self.display),
                    envvar=envvar,
                    parameter=self,
                ), stacklevel=2)

        if self.required:
            raise MissingParameter(
                "missing option %r" % self.display,
                hint="pass it on the command line (for example: %s %s)" % (self.longest, self.metavar),
                context=context,
                parameter=self,
            )
        return self.default

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, ", ".join(map(repr, self._names)))


class Flag(Option):
    _minimum = 0

    def __init__(self, *names, help="", envvar=Unset, hidden=False):
        super().__init__(*names, help=help, type=bool, nargs=0, default=False, envvar=envvar, hidden=hidden)

    def process(self, context, raw, /):
        return True

    def from_envvar(self, context, raw, envvar, /):
        if (lowered := raw.strip().lower()) in _TRUTHY:
            return True
        if lowered in _FALSY:
            return False
        raise BadParameterValue(
            "invalid value for %r from %s: %r" % (self.display, envvar, raw),
            hint="use one of %s" % ", ".join(sorted(_TRUTHY | _FALSY)),
            context=context,
            parameter=self,
        )


class HelpOption(Flag):
    eager = True

    def process(self, context, raw, /):
        raise PrintHelpMessage(context.command)


class VersionOption(Flag):
    eager = True

    def __init__(self, version, *names, message="%(prog)s version %(version)s", help="show the version and exit"):
        if not isinstance(version, str):
            raise TypeError("versionoption 'version' must be a string")
        super().__init__(*names, help=help)
        self.version = version
        self.message = message

    def process(self, context, raw, /):
        raise PrintMessage(self.message % {"prog": context.command.name, "version": self.version})


def help_option(names, message, /):
    """
    Build the help option synthesized for a context's help names.
    """
    return HelpOption(*names, help=message)


def version_option(version, /, *names, message="%(prog)s version %(version)s"):
    """
    Build an eager --version option; pass it to register_option or declare it
    as a class attribute.
    """
    return VersionOption(version, *(names or ("--version",)), message=message)


class Argument(Parameter):
    def __init__(
            self,
            name=Unset,
            /,
            help="",
            type=str,
            nargs=1,
            required=Unset,
            default=None,
            choices=Unset,
            hidden=False,
    ):
        super().__init__(help=help, type=type, default=default, choices=choices, hidden=hidden)
        if not isinstance(name, str | Unset):
            raise TypeError("argument 'name' must be a string")
        if isinstance(name, str) and not (name := name.strip()):
            raise ValueError("argument 'name' cannot be empty")
        if not isinstance(nargs, int) or isinstance(nargs, bool) or (nargs < 1 and nargs != -1):
            raise ConfigurationError("argument 'nargs' must be a positive integer or -1")
        self._name = name
        self.nargs = nargs
        self.required = bool(coalesce(required, nargs != -1))

    @property
    def name(self):
        return coalesce(self._name, self.attribute or "arg").upper().replace("-", "_")

    @property
    def display(self):
        return self.name

    @property
    def variadic(self):
        return self.nargs == -1

    @property
    def parameter_help(self):
        if self.hidden:
            return None
        return ArgumentHelp(self.name, self.help, self.required, self.nargs != 1)

    def process(self, context, raw, /):
        if self.nargs == 1:
            return self.convert(context, raw[0])
        return tuple(self.convert(context, token) for token in raw)

    def missing(self, context, /):
        if self.required:
            raise MissingParameter(
                "missing argument %r" % self.name,
                hint="run '%s --help' to see the expected usage" % context.command_path,
                context=context,
                parameter=self,
            )
        if self.variadic and self.default is None:
            return ()
        return self.default

    def __repr__(self):
        return "%s(%r)" % (type(self).__name__, self.name)


__all__ = (
    "OptionHelp",
    "ArgumentHelp",
    "SubcommandHelp",
    "Parameter",
    "Option",
    "Flag",
    "HelpOption",
    "VersionOption",
    "Argument",
    "help_option",
    "version_option",
)
