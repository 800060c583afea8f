"""
Canopy help formatter (Rich-based, string output).

HelpFormatter turns parameter metadata assembled by a command into usage and
help text. It renders Rich renderables into a private console and returns the
captured string, so callers decide where and when the text is printed.

Contract
- format_usage(parameters, program_name) -> str
- format_help(help, epilog, parameters, program_name) -> str
  where parameters is a sequence of OptionHelp | ArgumentHelp | SubcommandHelp.

Layout
    usage: PROG [OPTIONS] ARG... COMMAND [ARGS]...

    help text

    options:
      -h, --help  show this message and exit

    arguments:
      ARG         what the argument is

    commands:
      sub         short help of the subcommand

    epilog text

Palette keys
- usage-label, program-name, usage-section, description-section, epilog-section
- section-label, option-name, metavar, argument-name, command-name, parameter-help

Customization
- Define a mapping named __styles__ in __main__ to override any palette entry.
- When colorful is False (default) no styling is applied and the output is
  plain text; trailing whitespace is always stripped from every line.
"""
import io
from collections import defaultdict

from rich.console import Console, Group
from rich.padding import Padding
from rich.table import Table
from rich.text import Text

from .parameters import OptionHelp, ArgumentHelp, SubcommandHelp
from .utils import Unset, UnsetType, coalesce


class HelpFormatter:
    def __init__(self, *, width=Unset, colorful=False, indent=2):
        if not isinstance(width, int | UnsetType) or (width is not Unset and width < 20):
            raise ValueError("helpformatter 'width' must be an integer of at least 20")
        self.width = width
        self.colorful = bool(colorful)
        self.indent = indent

    def _styler(self):
        styles = defaultdict(str, {
            # === Head sections ===
            "usage-label": "bold #00E6FF",  # CYAN → signature info color
            "program-name": "bold #FF4D94",  # MAGENTA-PINK → brand pop
            "usage-section": "bold #36C5F0",  # SKY-BLUE → softer than cyan
            "description-section": "italic #A3A3A3",  # Neutral gray
            "epilog-section": "#737373",  # Dim footer gray

            # === Sections ===
            "section-label": "bold #FFFFFF",
            "option-name": "bold #00E6FF",
            "metavar": "bold #FFD600",
            "argument-name": "bold #FFD600",
            "command-name": "bold #22C55E",
            "parameter-help": "#9CA3AF",
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            return styles[style] if self.colorful else ""
        return styler

    def _render(self, renderable):
        console = Console(
            file=io.StringIO(),
            width=coalesce(self.width, Console().width),
            force_terminal=self.colorful,
            color_system="truecolor" if self.colorful else None,
            highlight=False,
            emoji=False,
        )
        with console.capture() as capture:
            console.print(renderable)
        return "\n".join(line.rstrip() for line in capture.get().rstrip("\n").splitlines())

    def _usage(self, parameters, program_name, styler):
        usage = Text()
        usage.append("usage", styler("usage-label")).append(":")
        if program_name:
            usage.append(" ").append(program_name, styler("program-name"))

        items = []
        if any(isinstance(parameter, OptionHelp) for parameter in parameters):
            items.append("[OPTIONS]")
        for parameter in parameters:
            if not isinstance(parameter, ArgumentHelp):
                continue
            metavar = parameter.name if parameter.required else "[%s]" % parameter.name
            items.append(metavar + "..." * parameter.repeatable)
        if any(isinstance(parameter, SubcommandHelp) for parameter in parameters):
            items.append("COMMAND [ARGS]...")

        for item in items:
            usage.append(" ").append(item, styler("usage-section"))
        return usage

    def _section(self, title, rows, styler):
        table = Table.grid(padding=(0, 2))
        table.add_column(no_wrap=True)
        table.add_column()
        for name, help in rows:
            table.add_row(name, Text(help, styler("parameter-help")))
        return Group(
            Text.assemble((title, styler("section-label")), ":"),
            Padding(table, (0, 0, 0, self.indent)),
        )

    def format_usage(self, parameters, program_name=""):
        return self._render(self._usage(parameters, program_name, self._styler()))

    def format_help(self, help, epilog, parameters, program_name=""):
        styler = self._styler()
        renders = [self._usage(parameters, program_name, styler)]

        if help:
            renders.append(Padding(Text(help.strip(), styler("description-section")), (0, 0, 0, self.indent)))

        options = []
        arguments = []
        commands = []
        for parameter in parameters:
            match parameter:
                case OptionHelp(names=names, metavar=metavar, help=text):
                    name = Text(", ".join(names), styler("option-name"))
                    if metavar:
                        name.append(" ").append(metavar, styler("metavar"))
                    options.append((name, text))
                case ArgumentHelp(name=name, help=text):
                    arguments.append((Text(name, styler("argument-name")), text))
                case SubcommandHelp(name=name, help=text):
                    commands.append((Text(name, styler("command-name")), text))
                case _:
                    raise TypeError(f"helpformatter cannot render {parameter!r}")

        for title, rows in (("options", options), ("arguments", arguments), ("commands", commands)):
            if rows:
                renders.append(self._section(title, rows, styler))

        if epilog:
            renders.append(Text(epilog.strip(), styler("epilog-section")))

        spaced = []
        for render in renders:
            if spaced:
                spaced.append(Text())
            spaced.append(render)
        return self._render(Group(*spaced))


__all__ = (
    "HelpFormatter",
)
