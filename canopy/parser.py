r"""
Canopy token parser: match argv against a command's parameters, then execute.

Entry point
- parse(argv, context): consume argv for context.command, store the parsed
  values on the command, run it, and descend into the chosen subcommand.

Grammar
- '--' ends option scanning; every later token is positional.
- Long options: '--name=value' or '--name value...' (nargs tokens). A token
  whose part before '=' names a registered option is handled the same way,
  so single-dash long names ('-name') work too.
- Short clusters: '-abc' is '-a -b -c'. The first value-taking option in a
  cluster consumes the rest of the cluster ('-ofile') or the next tokens.
- Negative numbers ('-3', '-0.5') are positional unless registered as names.
- Eager options (help, version) are processed the moment they are matched.
- Positionals, when the command has subcommands:
  • keys of command.aliases() expand in place into their token lists;
  • a subcommand name selects it and stops scanning (the rest is its argv);
  • once the command's own arguments are full, any other token is an
    unknown subcommand.
- context.allow_interspersed_args=False turns every token after the first
  positional into a positional.

Positional distribution
- Arguments take tokens left to right; a variadic argument (nargs=-1) takes
  whatever the fixed arguments after it do not need.

Execution
- With a chosen subcommand: context.invoked_subcommand is set, the command
  runs, then the remaining tokens are parsed against the subcommand's
  existing context.
- Without one: a command with subcommands and invoke_without_subcommand=False
  raises PrintHelpMessage; otherwise the command runs.

Every user mistake raises a UsageError subclass carrying the context it
happened in; messages lead with the ordinal position of the offending token.
"""
import difflib
import logging
import re
from collections import defaultdict, deque

from .faults import *
from .utils import ordinal

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"-\d+(\.\d+)?")


class Parser:
    """
    Single-use parser bound to one context.
    """

    def __init__(self, context, /):
        self.context = context
        self.command = context.command
        self.switches = {name: option for option in self.command.options for name in option.names}
        self.children = {child.name: child for child in self.command.children}
        self.aliases = self.command.aliases()
        self.expanded = set()
        self.occurrences = defaultdict(list)
        self.positionals = []
        self.subcommand = None
        self.index = 0

    def _suggest(self, input, candidates):
        suggestions = difflib.get_close_matches(input, list(candidates), 3)
        if suggestions:
            hint = "did you mean %r? run '%s --help' for details" % (suggestions[0], self.context.command_path)
        else:
            hint = "run '%s --help' for details" % self.context.command_path
        return suggestions, hint

    def _lookup(self, name):
        try:
            return self.switches[name]
        except KeyError:
            suggestions, hint = self._suggest(name, self.switches)
            raise NoSuchOption(
                "no such option %r at %s position" % (name, ordinal(self.index)),
                hint=hint,
                context=self.context,
                input=name,
                index=self.index,
                suggestions=suggestions,
            ) from None

    def _take(self, option, name, inline, tokens):
        """
        Collect the raw values of one option occurrence and record them.
        """
        if not option.nargs:
            if inline is not None:
                raise FlagAssignmentError(
                    "option %r at %s position does not take a value" % (name, ordinal(self.index)),
                    hint="remove everything from '=' (for example: %s)" % name,
                    context=self.context,
                    parameter=option,
                    input=name,
                    index=self.index,
                )
            raw = ()
        else:
            raw = [] if inline is None else [inline]
            while len(raw) < option.nargs:
                if not tokens:
                    raise IncorrectOptionNargs(
                        "option %r at %s position requires %s" % (
                            name, ordinal(self.index), "a value" if option.nargs == 1 else "%d values" % option.nargs
                        ),
                        hint="for example: %s %s" % (name, " ".join([option.metavar] * option.nargs)),
                        context=self.context,
                        parameter=option,
                        input=name,
                        index=self.index,
                    )
                raw.append(tokens.popleft())
                self.index += 1
            raw = tuple(raw)

        if option.eager:
            option.process(self.context, raw)
        self.occurrences[option].append(raw)

    def _long(self, token, tokens):
        name, equals, value = token.partition("=")
        self._take(self._lookup(name), name, value if equals else None, tokens)

    def _short(self, token, tokens):
        for offset, letter in enumerate(token[1:], start=2):
            option = self._lookup(name := "-" + letter)
            if not option.nargs:
                self._take(option, name, None, tokens)
                continue
            self._take(option, name, token[offset:] or None, tokens)
            return

    @property
    def _capacity(self):
        if any(argument.variadic for argument in self.command.arguments):
            return float("inf")
        return sum(argument.nargs for argument in self.command.arguments)

    def _positional(self, token, tokens):
        """
        Handle a positional token; returns True when scanning must stop.
        """
        if self.children:
            if token in self.children:
                self.subcommand = self.children[token]
                return True
            if token in self.aliases and token not in self.expanded:
                self.expanded.add(token)
                tokens.extendleft(reversed(list(self.aliases[token])))
                self.index -= 1
                return False
            if len(self.positionals) >= self._capacity:
                suggestions, hint = self._suggest(token, self.children)
                raise NoSuchSubcommand(
                    "no such subcommand %r at %s position" % (token, ordinal(self.index)),
                    hint=hint,
                    context=self.context,
                    input=token,
                    index=self.index,
                    suggestions=suggestions,
                )
        self.positionals.append(token)
        return False

    def _scan(self, tokens):
        interspersed = True
        while tokens:
            token = tokens.popleft()
            self.index += 1

            if token == "--":
                self.positionals.extend(tokens)
                self.index += len(tokens)
                tokens.clear()
                break
            if not interspersed:
                if self._positional(token, tokens):
                    break
                continue

            if token.startswith("--") or token.partition("=")[0] in self.switches:
                self._long(token, tokens)
            elif token.startswith("-") and len(token) > 1 and not _NUMBER.fullmatch(token):
                self._short(token, tokens)
            else:
                if self._positional(token, tokens):
                    break
                interspersed = self.context.allow_interspersed_args
        return tokens

    def _distribute(self):
        """
        Assign positional tokens to arguments; returns {argument: value}.
        """
        arguments = self.command.arguments
        remaining = deque(self.positionals)
        values = {}
        for position, argument in enumerate(arguments):
            if argument.variadic:
                needed = sum(later.nargs for later in arguments[position + 1:] if not later.variadic)
                raw = [remaining.popleft() for _ in range(max(len(remaining) - needed, 0))]
                values[argument] = argument.process(self.context, raw) if raw else argument.missing(self.context)
                continue
            if not remaining:
                values[argument] = argument.missing(self.context)
                continue
            if len(remaining) < argument.nargs:
                raise IncorrectArgumentNargs(
                    "argument %r takes %d values but %d were given" % (argument.name, argument.nargs, len(remaining)),
                    hint="run '%s --help' to see the expected usage" % self.context.command_path,
                    context=self.context,
                    parameter=argument,
                )
            values[argument] = argument.process(self.context, [remaining.popleft() for _ in range(argument.nargs)])

        if remaining:
            raise UnexpectedArgument(
                "got unexpected extra argument%s %s" % ("s" * (len(remaining) > 1), " ".join(map(repr, remaining))),
                hint="remove the extra values or run '%s --help' to see the expected usage" % self.context.command_path,
                context=self.context,
                input=list(remaining),
            )
        return values

    def parse(self, argv, /):
        rest = self._scan(deque(argv))

        values = {}
        for option in self.command.options:
            values[option] = option.resolve(self.context, self.occurrences.get(option, []))
        values |= self._distribute()
        self.command._values.update(values)

        if self.subcommand is not None:
            logger.debug("dispatching %r to subcommand %r", self.command.name, self.subcommand.name)
            self.context.invoked_subcommand = self.subcommand
            self.command.run()
            parse(list(rest), self.subcommand.context)
        elif self.children and not self.command.invoke_without_subcommand:
            raise PrintHelpMessage(self.command)
        else:
            self.command.run()


def parse(argv, context, /):
    """
    Parse argv for context.command and execute the resulting command chain.
    """
    Parser(context).parse(argv)


__all__ = (
    "Parser",
    "parse",
)
