"""
Canopy faults: failure signals, configuration errors and warnings.

Scope
- Signal: the closed set of outcomes the top-level Command.main boundary
  recognizes (help, message, usage, error, abort) with their exit statuses.
- FaultCode: stable numeric identifiers for user-facing usage errors, grouped
  by domain so messages and logs stay searchable.
- CommandSignal and subclasses: exceptions used as control flow between the
  parser, the command bodies and Command.main. Each class carries its Signal
  tag; main() dispatches on the tag, never on the class hierarchy.
- ConfigurationError / ContextError: programmer errors. They are raised at
  declaration or access time and are never caught by main().
- CommandWarning: soft faults emitted through the warnings module.

Integration
- Parser code raises UsageError subclasses with position-first messages and a
  single hint ("did you mean '--verbose'?").
- Command bodies may raise PrintMessage, CommandError or Abort directly.
"""
from enum import Enum, IntEnum
from types import MappingProxyType

from .utils import Unset, coalesce


class Signal(Enum):
    """
    tags for the five outcomes handled by Command.main.

    each tag knows the exit status it maps to and whether its output belongs
    on the error stream.
    """
    HELP = "help"
    MESSAGE = "message"
    USAGE = "usage"
    ERROR = "error"
    ABORT = "abort"

    @property
    def status(self):
        return 0 if self in (Signal.HELP, Signal.MESSAGE) else 1

    @property
    def stderr(self):
        return bool(self.status)


class FaultCode(IntEnum):
    """
    canonical fault codes used by usage errors and warnings (stable identifiers).

    grouping
    - routing (1110x)
      • NO_SUCH_SUBCOMMAND
    - switches (1111x)
      • NO_SUCH_OPTION, FLAG_ASSIGNMENT, INCORRECT_OPTION_NARGS
    - positionals (1112x)
      • UNEXPECTED_ARGUMENT, INCORRECT_ARGUMENT_NARGS
    - values (1113x)
      • MISSING_PARAMETER, BAD_PARAMETER_VALUE, INVALID_CHOICE
    - warnings (12xxx)
      • EMPTY_ENVVAR
    """
    USAGE                    = 11100

    # --- routing errors ---
    NO_SUCH_SUBCOMMAND       = 11102

    # --- switch errors ---
    NO_SUCH_OPTION           = 11111
    FLAG_ASSIGNMENT          = 11113
    INCORRECT_OPTION_NARGS   = 11117

    # --- positional errors ---
    UNEXPECTED_ARGUMENT      = 11121
    INCORRECT_ARGUMENT_NARGS = 11122

    # --- value errors ---
    MISSING_PARAMETER        = 11131
    BAD_PARAMETER_VALUE      = 11132
    INVALID_CHOICE           = 11133

    # --- warnings ---
    EMPTY_ENVVAR             = 12111

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__ to
        override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class ConfigurationError(ValueError):
    """
    A command tree was declared incorrectly (programmer error).
    """


class DuplicateOptionError(ConfigurationError):
    def __init__(self, name, /, command=None):
        self.name = name
        self.command = command
        if command is None:
            super().__init__(f"option name {name!r} is already in use")
        else:
            super().__init__(f"command {command.name!r} option name {name!r} is already in use")


class ContextError(RuntimeError):
    """
    A command's context was required before it had been built.
    """


class CommandSignal(Exception):
    """
    Base class of the failure signals recognized by Command.main.
    """
    signal = None


class PrintHelpMessage(CommandSignal):
    signal = Signal.HELP

    def __init__(self, command, /):
        super().__init__(command.name)
        self.command = command


class PrintMessage(CommandSignal):
    signal = Signal.MESSAGE

    def __init__(self, message, /):
        super().__init__(message)
        self.message = message


class Abort(CommandSignal):
    signal = Signal.ABORT

    def __init__(self):
        super().__init__("aborted")


class CommandError(CommandSignal):
    """
    A recoverable failure with a human-readable message.

    Extra keyword options (hint, context, parameter, suggestions, input, index)
    are kept read-only in .options for renderers and tests.
    """
    signal = Signal.ERROR

    def __init__(self, message, /, **options):
        assert isinstance(message, str)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def hint(self):
        return self.options.get("hint", Unset)

    @property
    def context(self):
        return self.options.get("context")

    def format_message(self):
        if hint := coalesce(self.hint):
            return "%s\n  (%s)" % (self.message, hint)
        return self.message

    def __str__(self):
        return self.format_message()


class UsageError(CommandError):
    """
    User input violates the declared grammar of a command.

    help_message(context) prefixes the error with the usage line of the
    command the error happened in, so users see the shape they should have
    typed right above what went wrong.
    """
    signal = Signal.USAGE
    code = FaultCode.USAGE

    @property
    def parameter(self):
        return self.options.get("parameter")

    def help_message(self, context=None, /):
        context = self.context or context
        parts = []
        if context is not None:
            parts.append(context.command.get_formatted_usage())
        parts.append("error: " + self.format_message())
        return "\n\n".join(parts)


class NoSuchOption(UsageError):
    code = FaultCode.NO_SUCH_OPTION


class NoSuchSubcommand(UsageError):
    code = FaultCode.NO_SUCH_SUBCOMMAND


class FlagAssignmentError(UsageError):
    code = FaultCode.FLAG_ASSIGNMENT


class IncorrectOptionNargs(UsageError):
    code = FaultCode.INCORRECT_OPTION_NARGS


class UnexpectedArgument(UsageError):
    code = FaultCode.UNEXPECTED_ARGUMENT


class IncorrectArgumentNargs(UsageError):
    code = FaultCode.INCORRECT_ARGUMENT_NARGS


class MissingParameter(UsageError):
    code = FaultCode.MISSING_PARAMETER


class BadParameterValue(UsageError):
    code = FaultCode.BAD_PARAMETER_VALUE


class InvalidChoice(BadParameterValue):
    code = FaultCode.INVALID_CHOICE


class CommandWarning(Warning):
    def __init__(self, message, /, **options):
        assert isinstance(message, str)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)


class EmptyEnvvarWarning(CommandWarning):
    code = FaultCode.EMPTY_ENVVAR


__all__ = (
    "Signal",
    "FaultCode",
    "ConfigurationError",
    "DuplicateOptionError",
    "ContextError",
    "CommandSignal",
    "PrintHelpMessage",
    "PrintMessage",
    "Abort",
    "CommandError",
    "UsageError",
    "NoSuchOption",
    "NoSuchSubcommand",
    "FlagAssignmentError",
    "IncorrectOptionNargs",
    "UnexpectedArgument",
    "IncorrectArgumentNargs",
    "MissingParameter",
    "BadParameterValue",
    "InvalidChoice",
    "CommandWarning",
    "EmptyEnvvarWarning",
)
