"""
Command tests: registry, composition, context construction, help, main().

Scope
- main() is exercised end to end with stdout/stderr redirected; every test
  checks both the printed text and the exit status.
- Parsing details live in test_parser.
"""
import contextlib
import io
import os
import unittest
from unittest import TestCase, mock

from canopy import *
from canopy.utils import Unset


class Tool(Command):
    """Manage the local repository.

    Longer description that short_help never shows.
    """

    def run(self):
        pass


class Child(Command):
    def run(self):
        pass


class RemoteAdd(Command):
    def run(self):
        pass


def run_main(command, argv):
    """
    Run command.main(argv); return (status, stdout, stderr).
    """
    stdout = io.StringIO()
    stderr = io.StringIO()
    with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
        try:
            command.main(argv)
        except SystemExit as exit:
            return exit.code, stdout.getvalue(), stderr.getvalue()
    return None, stdout.getvalue(), stderr.getvalue()


class TestDefinition(TestCase):
    def testNameAndHelpDefaults(self):
        tool = Tool()
        self.assertEqual(tool.name, "tool")
        self.assertTrue(tool.help.startswith("Manage the local repository."))
        self.assertEqual(tool.short_help(), "Manage the local repository")
        self.assertEqual(RemoteAdd().name, "remote-add")
        self.assertEqual(Child().help, "")

    def testAcronymClassName(self):
        class HTTPServer(Command):
            def run(self):
                pass

        class ParseURLs2Go(Command):
            def run(self):
                pass

        self.assertEqual(HTTPServer().name, "httpserver")
        self.assertEqual(ParseURLs2Go().name, "parse-urls2-go")

    def testExplicitValues(self):
        tool = Tool(name="git", help="Track content.", epilog="Bye.")
        self.assertEqual((tool.name, tool.help, tool.epilog), ("git", "Track content.", "Bye."))

    def testValidation(self):
        with self.assertRaises(ValueError):
            Tool(name="  ")
        with self.assertRaises(TypeError):
            Tool(help=3)

    def testRunIsAbstract(self):
        with self.assertRaises(TypeError):
            Command()

    def testRegistriesAreSnapshots(self):
        tool = Tool()
        tool.register_option(Flag("-v"))
        options = tool.options
        self.assertIsInstance(options, tuple)
        with self.assertRaises(AttributeError):
            tool.options = ()

    def testRepr(self):
        self.assertTrue(repr(Tool()).startswith("tool(name='tool'"))


class TestRegistry(TestCase):
    def testDisjointOptions(self):
        tool = Tool()
        tool.register_option(Option("-o", "--output"))
        tool.register_option(Flag("-v", "--verbose"))
        self.assertEqual([option.names for option in tool.options], [("-o", "--output"), ("-v", "--verbose")])

    def testDuplicateName(self):
        tool = Tool()
        tool.register_option(Option("-x", "--ex"))
        with self.assertRaises(DuplicateOptionError) as error:
            tool.register_option(Option("--ex"))
        self.assertEqual(error.exception.name, "--ex")
        self.assertIs(error.exception.command, tool)
        self.assertEqual(len(tool.options), 1)

    def testDuplicateDeclaredName(self):
        class Broken(Command):
            first = Flag("-v")
            second = Flag("-v", "--verbose")

            def run(self):
                pass

        with self.assertRaises(ConfigurationError):
            Broken()

    def testNamelessOption(self):
        with self.assertRaises(ConfigurationError):
            Tool().register_option(Option())

    def testWrongKinds(self):
        with self.assertRaises(TypeError):
            Tool().register_option(Argument())
        with self.assertRaises(TypeError):
            Tool().register_argument(Flag("-v"))

    def testArgumentsKeepOrder(self):
        tool = Tool()
        tool.register_argument(Argument("a"))
        tool.register_argument(Argument("a"))
        self.assertEqual([argument.name for argument in tool.arguments], ["A", "A"])

    def testDeclaredParametersFollowTheClassHierarchy(self):
        class Base(Command):
            verbose = Flag("-v")
            target = Argument()

            def run(self):
                pass

        class Derived(Base):
            target = Argument(nargs=-1)
            level = Option("--level")

        derived = Derived()
        self.assertEqual([option.names for option in derived.options], [("-v",), ("--level",)])
        self.assertTrue(derived.arguments[0].variadic)


class TestComposition(TestCase):
    def testPrefixWithoutParentPrefix(self):
        child = Child()
        Tool().subcommands(child)
        self.assertEqual(child.auto_envvar_prefix, "CHILD")

    def testPrefixUnderParentPrefix(self):
        child = RemoteAdd()
        Tool(auto_envvar_prefix="APP").subcommands(child)
        self.assertEqual(child.auto_envvar_prefix, "APP_REMOTE_ADD")

    def testExplicitPrefixIsKept(self):
        child = Child(auto_envvar_prefix="KEEP")
        Tool(auto_envvar_prefix="APP").subcommands(child)
        self.assertEqual(child.auto_envvar_prefix, "KEEP")

    def testOrderAndFlattening(self):
        first, second, third = Child(name="a"), Child(name="b"), Child(name="c")
        tool = Tool().subcommands(first, [second, third])
        self.assertEqual(tool.children, (first, second, third))

    def testDuplicateSubcommandName(self):
        with self.assertRaises(ConfigurationError):
            Tool().subcommands(Child(), Child())

    def testSelfAttachment(self):
        tool = Tool()
        with self.assertRaises(ConfigurationError):
            tool.subcommands(tool)

    def testNotACommand(self):
        with self.assertRaises(TypeError):
            Tool().subcommands("child")

    def testFunctionSubcommand(self):
        tool = Tool()

        @tool.command(name="hello")
        def greet():
            pass

        self.assertIsInstance(greet, FunctionCommand)
        self.assertEqual(tool.children, (greet,))
        self.assertEqual(greet.auto_envvar_prefix, "HELLO")


class TestContextConstruction(TestCase):
    def testContextBeforeParse(self):
        with self.assertRaises(ContextError):
            Tool().context

    def testHelpOptionSynthesized(self):
        tool = Tool()
        tool.get_formatted_usage()
        helps = [option for option in tool.options if isinstance(option, HelpOption)]
        self.assertEqual(len(helps), 1)
        self.assertEqual(helps[0].names, ("-h", "--help"))
        self.assertEqual(helps[0].help, "show this message and exit")

    def testHelpOptionOnlyTakesFreeNames(self):
        class Manual(Command):
            manual = Flag("--help", help="open the manual")

            def run(self):
                pass

        command = Manual()
        command.get_formatted_usage()
        helps = [option for option in command.options if isinstance(option, HelpOption)]
        self.assertEqual([option.names for option in helps], [("-h",)])
        self.assertEqual(len(command.options), 2)

    def testHelpOptionIsRegisteredOnce(self):
        tool = Tool()
        tool.parse([])
        tool.parse([])
        self.assertEqual(len(tool.options), 1)

    def testValuesResetBetweenParses(self):
        class Sub(Command):
            level = Option("-x", type=int)

            def run(self):
                pass

        sub = Sub()
        tool = Tool(invoke_without_subcommand=True).subcommands(sub)
        tool.parse(["sub", "-x", "1"])
        self.assertEqual(sub.level, 1)
        tool.parse([])
        self.assertIsNone(sub.level)

    def testHelpNamesAreReservedAfterContext(self):
        tool = Tool()
        tool.get_formatted_usage()
        with self.assertRaises(DuplicateOptionError):
            tool.register_option(Flag("--help"))

    def testCustomHelpNames(self):
        tool = Tool().configure(help_option_names={"-H"}, help_option_message="assist")
        tool.get_formatted_usage()
        self.assertEqual([option.names for option in tool.options], [("-H",)])
        self.assertEqual(tool.options[0].help, "assist")

    def testNoHelpNames(self):
        tool = Tool().configure(lambda builder: builder.help_option_names.clear())
        tool.get_formatted_usage()
        self.assertEqual(tool.options, ())

    def testConfigureRejectsNonCallable(self):
        with self.assertRaises(TypeError):
            Tool().configure("nope")

    def testParseUnderExternalContext(self):
        parent = Tool()
        parent.get_formatted_usage()
        child = Child()
        child.parse([], parent.context)
        self.assertIs(child.context.parent, parent.context)


class TestHelp(TestCase):
    def setUp(self):
        self.tool = Tool(epilog="See the manual.").configure(help_formatter=HelpFormatter(width=80))
        self.tool.register_option(Option("-o", "--output", metavar="PATH", help="where to write"))
        self.tool.register_option(Flag("--secret", hidden=True))
        self.tool.subcommands(Child(help="Do the child thing. Really."))

    def testUsage(self):
        self.assertEqual(self.tool.get_formatted_usage(), "usage: tool [OPTIONS] COMMAND [ARGS]...")

    def testHelp(self):
        help = self.tool.get_formatted_help()
        self.assertIn("Manage the local repository.", help)
        self.assertRegex(help, r"-o, --output PATH\s+where to write")
        self.assertRegex(help, r"-h, --help\s+show this message and exit")
        self.assertRegex(help, r"child\s+Do the child thing\n")
        self.assertNotIn("--secret", help)
        self.assertTrue(help.endswith("See the manual."))


class TestMain(TestCase):
    def testHelp(self):
        status, stdout, stderr = run_main(Tool(), ["--help"])
        self.assertEqual(status, 0)
        self.assertIn("usage: tool", stdout)
        self.assertIn("show this message and exit", stdout)
        self.assertEqual(stderr, "")

    def testSubcommandHelp(self):
        status, stdout, stderr = run_main(Tool().subcommands(Child()), ["child", "-h"])
        self.assertEqual(status, 0)
        self.assertIn("usage: child", stdout)

    def testMissingSubcommandShowsHelp(self):
        status, stdout, stderr = run_main(Tool().subcommands(Child()), [])
        self.assertEqual(status, 0)
        self.assertIn("commands:", stdout)

    def testUsageError(self):
        status, stdout, stderr = run_main(Tool(), ["--bogus"])
        self.assertEqual(status, 1)
        self.assertEqual(stdout, "")
        self.assertIn("usage: tool", stderr)
        self.assertIn("error: no such option '--bogus'", stderr)

    def testUsageErrorRaisedByBody(self):
        class Strict(Command):
            def run(self):
                raise UsageError("no such option: --bogus")

        status, stdout, stderr = run_main(Strict(), [])
        self.assertEqual(status, 1)
        self.assertIn("usage: strict", stderr)
        self.assertIn("error: no such option: --bogus", stderr)

    def testPrintMessage(self):
        class Hello(Command):
            def run(self):
                raise PrintMessage("hello there")

        status, stdout, stderr = run_main(Hello(), [])
        self.assertEqual(status, 0)
        self.assertEqual(stdout.strip(), "hello there")

    def testVersion(self):
        class Tool(Command):
            version = version_option("1.2.3")

            def run(self):
                pass

        status, stdout, stderr = run_main(Tool(), ["--version"])
        self.assertEqual(status, 0)
        self.assertEqual(stdout.strip(), "tool version 1.2.3")

    def testCommandError(self):
        class Failing(Command):
            def run(self):
                raise CommandError("disk is full", hint="free some space")

        status, stdout, stderr = run_main(Failing(), [])
        self.assertEqual(status, 1)
        self.assertIn("disk is full", stderr)
        self.assertIn("(free some space)", stderr)

    def testAbort(self):
        class Interrupted(Command):
            def run(self):
                raise Abort()

        status, stdout, stderr = run_main(Interrupted(), [])
        self.assertEqual(status, 1)
        self.assertEqual(stderr.strip(), "Aborted!")

    def testSuccess(self):
        status, stdout, stderr = run_main(Tool(), [])
        self.assertIsNone(status)
        self.assertEqual((stdout, stderr), ("", ""))

    def testOtherExceptionsPropagate(self):
        class Broken(Command):
            def run(self):
                raise RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            run_main(Broken(), [])

    def testConfigurationErrorsPropagate(self):
        class Clash(Command):
            def run(self):
                pass

        clash = Clash().configure(help_option_names={"not-a-switch"})
        with self.assertRaises(ConfigurationError):
            run_main(clash, [])

    def testDefaultArgvIsSysArgv(self):
        with mock.patch("sys.argv", ["tool", "--help"]):
            status, stdout, stderr = run_main(Tool(), Unset)
        self.assertEqual(status, 0)


class TestFunctionCommand(TestCase):
    def testSignatureBinding(self):
        calls = []

        @command
        def greet_user(who=Argument(), /, times=Option("-t", type=int, default=1), *, shout=Flag()):
            """Greet somebody."""
            calls.append((who, times, shout))

        self.assertEqual(greet_user.name, "greet-user")
        self.assertEqual(greet_user.help, "Greet somebody.")
        greet_user.parse(["bob", "-t", "2", "--shout"])
        self.assertEqual(calls, [("bob", 2, True)])

    def testDecoratorWithOptions(self):
        @command(name="hi", auto_envvar_prefix="HI")
        def hello(loud=Flag("-l")):
            pass

        self.assertEqual(hello.name, "hi")
        self.assertEqual(hello.options[0].envvar_for(hello), "HI_L")

    def testEnvironmentForFunctionCommand(self):
        calls = []

        @command(auto_envvar_prefix="APP")
        def serve(port=Option(type=int, default=80)):
            calls.append(port)

        with mock.patch.dict(os.environ, {"APP_PORT": "8080"}):
            serve.parse([])
        self.assertEqual(calls, [8080])

    def testRejectsPlainDefaults(self):
        with self.assertRaises(TypeError):
            command(lambda value=3: None)

    def testRejectsVariadics(self):
        with self.assertRaises(TypeError):
            command(lambda *values: None)

    def testRejectsNonCallables(self):
        with self.assertRaises(TypeError):
            command(3)


if __name__ == "__main__":
    unittest.main()
