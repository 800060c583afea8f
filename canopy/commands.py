"""
Canopy command layer: declare, compose, and run command trees.

What this module provides
- Command: an executable node owning options, arguments and subcommands.
  • Parameter registry with name uniqueness enforced at registration time.
  • Context construction (inheriting from the parent context) with automatic
    help-option injection, repeated down the whole tree in one pass.
  • parse(argv) to drive the parser, main(argv) to map failure signals to
    printed output and exit statuses.
  • subcommands(...) to attach children (inheriting the environment prefix),
    configure(...) to customize the context, command(...) to attach a
    function command in one step.
- command(...): build a Command from a plain function whose parameter
  defaults are Option, Flag or Argument specs (or return a decorator).

Quick start
    from canopy import Command, Option, Flag, Argument, command

    class Tool(Command):
        \"""Work with the local repository.\"""
        verbose = Flag("-v", "--verbose", help="talk more")

        def run(self):
            if self.verbose:
                print("starting", self.context.invoked_subcommand.name)

    @command
    def clone(url=Argument(help="repository to clone"), /, depth=Option("--depth", type=int)):
        \"""Clone a repository.\"""
        print("cloning", url, depth)

    tool = Tool(auto_envvar_prefix="TOOL").subcommands(clone)

    if __name__ == "__main__":
        tool.main()  # TOOL_VERBOSE=1 tool clone https://example.org/repo --depth 1

Signals handled by main()
- PrintHelpMessage → help of the command that raised it, status 0
- PrintMessage     → the message verbatim, status 0
- UsageError       → usage line + "error: ..." on stderr, status 1
- CommandError     → the message on stderr, status 1
- Abort            → "Aborted!" on stderr, status 1
Anything else (configuration errors included) propagates untouched.
"""
import inspect
import logging
import re
import shlex
import sys
from abc import ABCMeta, abstractmethod
from collections.abc import Iterable

from rich.console import Console
from rich.text import Text

from . import parser
from .context import Context
from .faults import *
from .parameters import Parameter, Option, Argument, SubcommandHelp, help_option
from .utils import *

logger = logging.getLogger(__name__)


class CommandType(ABCMeta):
    """
    Metaclass giving every Command class a human-friendly __typename__ and
    read-only mirrors of the fields listed in __introspectable__.

    - __typename__ is derived from the class name (split with hyphens where a
      lowercase letter or digit meets an uppercase one), and doubles as the
      default command name: class RemoteAdd yields "remote-add", class
      HTTPServer yields "httpserver".
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        return super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<=[a-z0-9])(?=[A-Z])", r"-", name).lower(),
            } | {
                field: mirror(field) for field in namespace.get("__introspectable__", ())
            },
            **options,
        )


def _tokens(argv, /):
    """
    Normalize an argv-like value into a list of tokens.

    - Unset: sys.argv[1:]
    - str: shell-like string split with shlex.split
    - Iterable[str]: used as-is (every element must be a string)
    """
    if argv is Unset:
        return sys.argv[1:]
    if isinstance(argv, str):
        return shlex.split(argv)
    if isinstance(argv, Iterable):
        tokens = list(argv)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("argv must be a string or an iterable of strings")
        return tokens
    raise TypeError("argv must be a string or an iterable of strings")


def _echo(output, /, *, stderr=False):
    console = Console(stderr=stderr, markup=False, emoji=False, highlight=False, soft_wrap=True)
    console.print(Text.from_ansi(output))


# One entry per Signal: how Command.main turns a caught signal into output.
_HANDLERS = {
    Signal.HELP: lambda command, signal: signal.command.get_formatted_help(),
    Signal.MESSAGE: lambda command, signal: signal.message,
    Signal.USAGE: lambda command, signal: signal.help_message(command._context),
    Signal.ERROR: lambda command, signal: signal.format_message(),
    Signal.ABORT: lambda command, signal: "Aborted!",
}


class Command(metaclass=CommandType):
    """
    A node of a command tree.

    Responsibilities
    - Registry: owns its options and arguments; option names are unique within
      the node and checked when an option is registered.
    - Composition: owns an ordered list of subcommands attached with
      subcommands(); children inherit the environment prefix and, at parse
      time, the context settings.
    - Context: exactly one Context per parse, built right before parsing (or on
      the first help/usage request) and required by every later step.
    - Invocation: parse() feeds argv to the parser; main() is the process
      boundary that prints and exits on failure signals.

    Declaring parameters
    - Class attributes holding Option/Flag/Argument specs are registered on
      construction (base classes first, definition order within a class, a
      subclass attribute replacing the base attribute of the same name).
    - After parsing, the attributes read as the parsed values.

    Notes
    - run() is abstract; a command with subcommands only runs its own body when
      invoke_without_subcommand is True or a subcommand was chosen.
    - Registries are exposed as read-only snapshots; mutate them through
      register_option/register_argument/subcommands.
    """
    __introspectable__ = (
        "name",
        "help",
        "epilog",
        "invoke_without_subcommand",
        "auto_envvar_prefix",
        "options",
        "arguments",
        "children",
    )
    __displayable__ = (
        "name",
        "help",
        "auto_envvar_prefix",
        "children",
    )

    def __init_subclass__(cls, **options):
        super().__init_subclass__(**options)
        for name, object in vars(cls).items():
            if isinstance(object, Parameter) and hasattr(Command, name):
                raise TypeError(f"{cls.__typename__} parameter attribute {name!r} shadows a command attribute")

    def __init__(self, help=Unset, epilog="", name=Unset, invoke_without_subcommand=False, auto_envvar_prefix=Unset):
        """
        Parameters
        - help: str | Unset
          Help text. Unset uses the docstring written on the command class itself
          (inherited docstrings are ignored), or "".
        - epilog: str
          Text printed after the parameter sections of the help.
        - name: str | Unset
          Command name. Unset derives it from the class name ("remote-add").
        - invoke_without_subcommand: bool
          Run this command's body even when none of its subcommands is chosen.
        - auto_envvar_prefix: str | None | Unset
          Prefix for option environment variables. Unset/None leaves it open to
          inheritance when this command is attached under a parent.
        """
        if help is Unset:
            help = inspect.cleandoc(vars(type(self)).get("__doc__") or "")
        if not isinstance(help, str):
            raise TypeError(f"{type(self).__typename__} 'help' must be a string")
        if not isinstance(epilog, str):
            raise TypeError(f"{type(self).__typename__} 'epilog' must be a string")
        if not isinstance(name, str | Unset):
            raise TypeError(f"{type(self).__typename__} 'name' must be a string")
        elif isinstance(name, str) and not (name := name.strip()):
            raise ValueError(f"{type(self).__typename__} 'name' cannot be empty")
        if not isinstance(auto_envvar_prefix, str | None | Unset):
            raise TypeError(f"{type(self).__typename__} 'auto_envvar_prefix' must be a string")

        self._name = coalesce(name, type(self).__typename__)
        self._help = help.strip()
        self._epilog = epilog.strip()
        self._invoke_without_subcommand = bool(invoke_without_subcommand)
        self._auto_envvar_prefix = coalesce(auto_envvar_prefix) or None
        self._options = []
        self._arguments = []
        self._children = []
        self._context_config = None
        self._context = None
        self._values = {}

        for parameter in self._declared():
            if isinstance(parameter, Argument):
                self.register_argument(parameter)
            else:
                self.register_option(parameter)

    @classmethod
    def _declared(cls):
        declared = {}
        for base in reversed(cls.__mro__):
            for name, object in vars(base).items():
                if isinstance(object, Parameter):
                    declared[name] = object
        return declared.values()

    @property
    def context(self):
        """
        The context built for the current parse.

        Raises
        - ContextError: when no context has been built yet.
        """
        if self._context is None:
            raise ContextError(f"{type(self).__typename__} {self.name!r} context accessed before parse has been called")
        return self._context

    def __rich_repr__(self):
        for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
            yield name, getattr(self, name)

    def __repr__(self):
        return "%s(%s)" % (type(self).__typename__, ", ".join("%s=%r" % item for item in self.__rich_repr__()))

    # ── registry ────────────────────────────────────────────────────────────

    def _registered_option_names(self):
        return {name for option in self._options for name in option.names}

    def register_option(self, option, /):
        """
        Add an option to this command.

        Raises
        - TypeError: when option is not an Option.
        - ConfigurationError: when the option has no names.
        - DuplicateOptionError: when any of its names is already registered here.
        """
        if not isinstance(option, Option):
            raise TypeError(f"{type(self).__typename__} register_option() argument must be an option")
        if not option.names:
            raise ConfigurationError(f"{type(self).__typename__} option {option!r} must have at least one name")
        names = self._registered_option_names()
        for name in option.names:
            if name in names:
                raise DuplicateOptionError(name, self)
        self._options.append(option)

    def register_argument(self, argument, /):
        """
        Add a positional argument to this command (no uniqueness check).
        """
        if not isinstance(argument, Argument):
            raise TypeError(f"{type(self).__typename__} register_argument() argument must be an argument")
        self._arguments.append(argument)

    # ── composition ─────────────────────────────────────────────────────────

    def subcommands(self, *commands):
        """
        Attach child commands, in order, and return self.

        Accepts commands and iterables of commands. Every child without an
        environment prefix receives join_envvar(self.auto_envvar_prefix, child.name);
        children with a prefix keep it.

        Raises
        - TypeError: when an element is not a command.
        - ConfigurationError: on a repeated subcommand name or self-attachment.
        """
        children = []
        for object in commands:
            if isinstance(object, Command):
                children.append(object)
            elif isinstance(object, Iterable) and not isinstance(object, str):
                children.extend(object)
            else:
                raise TypeError(f"{type(self).__typename__} subcommands() arguments must be commands")

        names = {child.name for child in self._children}
        for child in children:
            if not isinstance(child, Command):
                raise TypeError(f"{type(self).__typename__} subcommands() arguments must be commands")
            if child is self:
                raise ConfigurationError(f"{type(self).__typename__} {self.name!r} cannot be its own subcommand")
            if child.name in names:
                raise ConfigurationError(f"{type(self).__typename__} subcommand name {child.name!r} is already in use")
            names.add(child.name)

        self._children.extend(children)
        for child in children:
            if child._auto_envvar_prefix is None:
                child._auto_envvar_prefix = join_envvar(self._auto_envvar_prefix, child.name)
        return self

    def configure(self, block=Unset, /, **settings):
        """
        Customize the context built for this command and return self.

        settings are assigned on the ContextBuilder first, then block (a
        callable receiving the builder) runs. Anything left untouched is
        inherited from the parent context. A later call replaces an earlier one.

        Example
            tool.configure(help_option_names={"-H", "--help"})
            tool.configure(lambda builder: builder.help_option_names.discard("-h"))
        """
        if block is not Unset and not callable(block):
            raise TypeError(f"{type(self).__typename__} configure() argument must be callable")

        @rename("customize")
        def customize(builder):
            builder.update(**settings)
            if block:
                block(builder)

        self._context_config = customize
        return self

    def command(self, source=Unset, /, **options):
        """
        Build a function command with command(...) and attach it here.

        Works directly (self.command(func)) or as a decorator
        (@self.command(name="x")); returns the new child.
        """
        @rename("command")
        def attach(source, /):
            child = command(source, **options)
            self.subcommands(child)
            return child

        return attach(source) if source is not Unset else attach

    def aliases(self):
        """
        Map of subcommand aliases: token -> list of tokens it expands to.

        Override to let e.g. "ci" mean ["commit", "--all"].
        """
        return {}

    # ── context ─────────────────────────────────────────────────────────────

    def _create_context(self, parent=None, /):
        self._values.clear()
        self._context = Context.build(self, parent, self._context_config)
        logger.debug("built %r", self._context)

        if self._context.help_option_names:
            names = self._context.help_option_names - self._registered_option_names()
            if names:
                self.register_option(help_option(names, self._context.help_option_message))
                logger.debug("registered help option %s on %r", sorted(names), self.name)

        for command in self._children:
            command._create_context(self._context)

    # ── help ────────────────────────────────────────────────────────────────

    def short_help(self):
        return first_sentence(self.help)

    def _all_help_params(self):
        return [
            *(option.parameter_help for option in self._options if option.parameter_help),
            *(argument.parameter_help for argument in self._arguments if argument.parameter_help),
            *(SubcommandHelp(child.name, child.short_help()) for child in self._children),
        ]

    def get_formatted_usage(self):
        if self._context is None:
            self._create_context()
        return self.context.help_formatter.format_usage(self._all_help_params(), program_name=self.name)

    def get_formatted_help(self):
        if self._context is None:
            self._create_context()
        return self.context.help_formatter.format_help(
            self.help, self.epilog, self._all_help_params(), program_name=self.name
        )

    # ── execution ───────────────────────────────────────────────────────────

    def parse(self, argv, context=None, /):
        """
        Build the context tree (under context when given) and parse argv.

        Failure signals raised by the parser or by command bodies propagate;
        use main() to turn them into output and exit statuses.
        """
        tokens = _tokens(argv)
        self._create_context(context)
        parser.parse(tokens, self.context)

    def main(self, argv=Unset, /):
        """
        Run the command as a program.

        argv defaults to sys.argv[1:]; a string is split like a shell would.
        On a failure signal the matching output is printed and the process
        exits with the signal's status; otherwise main() returns normally.
        """
        tokens = _tokens(argv)
        try:
            self.parse(tokens)
        except CommandSignal as signal:
            if signal.signal not in _HANDLERS:
                raise
            output = _HANDLERS[signal.signal](self, signal)
            logger.debug("%r stopped by %s signal (status %d)", self.name, signal.signal.value, signal.signal.status)
            _echo(output, stderr=signal.signal.stderr)
            sys.exit(signal.signal.status)

    @abstractmethod
    def run(self):
        """
        Body of the command, called after its parameters were parsed.
        """


class FunctionCommand(Command):
    """
    Command whose body is a plain function.

    Every parameter of the function must default to an Option, Flag or
    Argument spec; specs are named after their parameters and registered in
    signature order. run() passes positional-only and standard parameters
    positionally and keyword-only parameters by keyword.
    """

    def __init__(self, callback, /, help=Unset, epilog="", name=Unset, invoke_without_subcommand=False, auto_envvar_prefix=Unset):
        if not callable(callback):
            raise TypeError("functioncommand 'callback' must be callable")
        try:
            signature = inspect.signature(callback)
        except (TypeError, ValueError):
            raise TypeError("functioncommand 'callback' must be an inspectable callable") from None

        super().__init__(
            help=coalesce(help, inspect.getdoc(callback) or ""),
            epilog=epilog,
            name=coalesce(name, re.sub(r"_+", "-", getattr(callback, "__name__", "command").strip("_")) or Unset),
            invoke_without_subcommand=invoke_without_subcommand,
            auto_envvar_prefix=auto_envvar_prefix,
        )
        self._callback = callback
        self._parameters = []

        for name, parameter in signature.parameters.items():
            if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                raise TypeError(f"functioncommand 'callback' parameter {name!r} cannot be variadic")
            if not isinstance(spec := parameter.default, Parameter):
                raise TypeError(f"functioncommand 'callback' parameter {name!r} default must be an option, flag or argument")
            spec.bind(name)
            if isinstance(spec, Argument):
                self.register_argument(spec)
            else:
                self.register_option(spec)
            self._parameters.append(parameter)

    def run(self):
        args = ()
        kwargs = {}
        for parameter in self._parameters:
            value = self._values.get(parameter.default, parameter.default.default)
            if parameter.kind is inspect.Parameter.KEYWORD_ONLY:
                kwargs[parameter.name] = value
            else:
                args += (value,)
        self._callback(*args, **kwargs)


def command(source=Unset, /, **options):
    """
    Create a function command, or return a decorator that creates one.

    Invocation modes
    - Direct:    cmd = command(func, name="x")
    - Decorator: @command / @command(name="x", help="...")

    Options are forwarded to FunctionCommand (help, epilog, name,
    invoke_without_subcommand, auto_envvar_prefix).
    """
    @rename("command")
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        return FunctionCommand(source, **options)

    return wrapper(source) if source is not Unset else wrapper


__all__ = (
    "Command",
    "FunctionCommand",
    "command",
)
