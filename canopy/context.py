"""
Canopy runtime contexts.

A Context is the per-command configuration snapshot built right before
parsing. Contexts form a tree mirroring the command tree: each one is built
from its owning command, the parent command's context (if any) and the
command's customization function.

Inheritance
- ContextBuilder starts from the parent context's values, or from the global
  defaults at the root, then the command's customization mutates it.
- Settings not touched by the customization therefore hold the nearest
  ancestor's value.

Settings
- help_option_names: names of the synthesized help option ({"-h", "--help"}).
  An empty collection disables help synthesis for the command.
- help_option_message: help text of the synthesized help option.
- help_formatter: object with format_usage/format_help (HelpFormatter).
- allow_interspersed_args: when False, everything after the first positional
  token is positional.
- obj: free slot for user state shared down the tree.

Example
    >>> root = Tool().configure(help_option_names={"-H", "--help"})
    >>> root.subcommands(Sub())
    >>> root.get_formatted_help()  # builds both contexts, -H inherited by Sub
"""
from collections.abc import Iterable

from .formatting import HelpFormatter
from .utils import mirror


class ContextBuilder:
    """
    Mutable staging area handed to a command's customization function.
    """

    def __init__(self, parent=None, /):
        if parent is None:
            self.help_option_names = {"-h", "--help"}
            self.help_option_message = "show this message and exit"
            self.help_formatter = HelpFormatter()
            self.allow_interspersed_args = True
            self.obj = None
        else:
            self.help_option_names = set(parent.help_option_names)
            self.help_option_message = parent.help_option_message
            self.help_formatter = parent.help_formatter
            self.allow_interspersed_args = parent.allow_interspersed_args
            self.obj = parent.obj

    def update(self, **settings):
        """
        Assign several settings at once; unknown names raise TypeError.
        """
        for name, object in settings.items():
            if name not in vars(self):
                raise TypeError(f"context setting {name!r} does not exist")
            setattr(self, name, object)
        return self


class Context:
    """
    Per-command configuration resolved by inheritance from ancestor contexts.

    Contexts are created by Context.build (called from Command._create_context);
    every field except obj and invoked_subcommand is read-only afterwards.
    """
    command = mirror("command")
    parent = mirror("parent")
    help_option_names = mirror("help_option_names")
    help_option_message = mirror("help_option_message")
    help_formatter = mirror("help_formatter")
    allow_interspersed_args = mirror("allow_interspersed_args")

    def __init__(self, command, parent, builder, /):
        if not isinstance(builder.help_option_names, Iterable) or isinstance(builder.help_option_names, str):
            raise TypeError("context 'help_option_names' must be an iterable of strings")
        if not all(isinstance(name, str) for name in builder.help_option_names):
            raise TypeError("context 'help_option_names' must be an iterable of strings")
        if not isinstance(builder.help_option_message, str):
            raise TypeError("context 'help_option_message' must be a string")
        if not callable(getattr(builder.help_formatter, "format_help", None)) or \
                not callable(getattr(builder.help_formatter, "format_usage", None)):
            raise TypeError("context 'help_formatter' must provide format_help and format_usage")

        self._command = command
        self._parent = parent
        self._help_option_names = frozenset(builder.help_option_names)
        self._help_option_message = builder.help_option_message
        self._help_formatter = builder.help_formatter
        self._allow_interspersed_args = bool(builder.allow_interspersed_args)
        self.obj = builder.obj
        self.invoked_subcommand = None

    @classmethod
    def build(cls, command, parent=None, customize=None, /):
        """
        Build a context for command, inheriting from parent and applying customize.

        customize receives a ContextBuilder and mutates it in place; its return
        value is ignored.
        """
        builder = ContextBuilder(parent)
        if customize is not None:
            customize(builder)
        return cls(command, parent, builder)

    @property
    def lineage(self):
        """
        Contexts from the root down to this one.
        """
        lineage = [context := self]
        while context.parent:
            lineage.append(context := context.parent)
        return tuple(reversed(lineage))

    @property
    def command_path(self):
        return " ".join(context.command.name for context in self.lineage)

    def find_root(self):
        return self.lineage[0]

    def find_object(self, type, /):
        """
        Return the nearest obj (walking up to the root) that is an instance of type.
        """
        for context in reversed(self.lineage):
            if isinstance(context.obj, type):
                return context.obj
        return None

    def __repr__(self):
        return "context(command=%r, parent=%r)" % (
            self._command.name,
            self._parent.command.name if self._parent else None,
        )


__all__ = (
    "Context",
    "ContextBuilder",
)
