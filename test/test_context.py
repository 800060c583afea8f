"""
Context tests: defaults, inheritance down the command tree, customization.
"""
import unittest
from unittest import TestCase

from canopy import *


class Leaf(Command):
    def run(self):
        pass


class Root(Command):
    def run(self):
        pass


class TestContextBuild(TestCase):
    def testDefaults(self):
        context = Context.build(Leaf())
        self.assertEqual(context.help_option_names, {"-h", "--help"})
        self.assertEqual(context.help_option_message, "show this message and exit")
        self.assertIsInstance(context.help_formatter, HelpFormatter)
        self.assertTrue(context.allow_interspersed_args)
        self.assertIsNone(context.obj)
        self.assertIsNone(context.parent)
        self.assertIsNone(context.invoked_subcommand)

    def testCustomizeRunsOnBuilder(self):
        def customize(builder):
            builder.help_option_names = {"--assist"}
            builder.obj = {"verbose": True}

        context = Context.build(Leaf(), None, customize)
        self.assertEqual(context.help_option_names, {"--assist"})
        self.assertEqual(context.obj, {"verbose": True})

    def testInheritsFromParent(self):
        parent = Context.build(Root(), None, lambda builder: builder.update(
            help_option_message="usage help",
            allow_interspersed_args=False,
        ))
        child = Context.build(Leaf(), parent)
        self.assertIs(child.parent, parent)
        self.assertEqual(child.help_option_message, "usage help")
        self.assertFalse(child.allow_interspersed_args)
        self.assertIs(child.help_formatter, parent.help_formatter)

    def testChildOverridesParent(self):
        parent = Context.build(Root(), None, lambda builder: builder.update(help_option_message="a"))
        child = Context.build(Leaf(), parent, lambda builder: builder.update(help_option_message="b"))
        self.assertEqual(parent.help_option_message, "a")
        self.assertEqual(child.help_option_message, "b")

    def testFieldsAreReadOnly(self):
        context = Context.build(Leaf())
        with self.assertRaises(AttributeError):
            context.help_option_message = "other"
        context.obj = 1
        self.assertEqual(context.obj, 1)

    def testUnknownSettingIsRejected(self):
        with self.assertRaises(TypeError):
            Context.build(Leaf(), None, lambda builder: builder.update(colour=True))

    def testInvalidHelpFormatterIsRejected(self):
        with self.assertRaises(TypeError):
            Context.build(Leaf(), None, lambda builder: builder.update(help_formatter=object()))


class TestContextTree(TestCase):
    def setUp(self):
        self.root = Root().configure(help_option_message="custom message")
        self.middle = Leaf(name="middle").configure(help_option_names={"--assist"})
        self.bottom = Leaf(name="bottom")
        self.sibling = Leaf(name="sibling")
        self.root.subcommands(self.middle.subcommands(self.bottom), self.sibling)

    def testOneContextPerDescendant(self):
        self.root.get_formatted_help()
        for command in (self.root, self.middle, self.bottom, self.sibling):
            self.assertIs(command.context.command, command)
        self.assertIsNone(self.root.context.parent)
        self.assertIs(self.middle.context.parent, self.root.context)
        self.assertIs(self.bottom.context.parent, self.middle.context)
        self.assertIs(self.sibling.context.parent, self.root.context)

    def testSettingsFlowDownward(self):
        self.root.get_formatted_help()
        self.assertEqual(self.bottom.context.help_option_names, {"--assist"})
        self.assertEqual(self.bottom.context.help_option_message, "custom message")
        self.assertEqual(self.sibling.context.help_option_names, {"-h", "--help"})

    def testCommandPathAndRoot(self):
        self.root.get_formatted_help()
        self.assertEqual(self.bottom.context.command_path, "root middle bottom")
        self.assertIs(self.bottom.context.find_root(), self.root.context)
        self.assertEqual(len(self.bottom.context.lineage), 3)

    def testFindObject(self):
        self.root.configure(obj={"shared": True})
        self.root.get_formatted_help()
        self.assertEqual(self.bottom.context.find_object(dict), {"shared": True})
        self.assertIsNone(self.bottom.context.find_object(list))

    def testRecursesEvenWithoutHelpNames(self):
        self.root.configure(help_option_names=set())
        self.root.get_formatted_help()
        self.assertEqual(self.root.options, ())
        self.assertIs(self.sibling.context.parent, self.root.context)
        self.assertEqual(self.sibling.options, ())

    def testRepr(self):
        self.root.get_formatted_help()
        self.assertEqual(repr(self.middle.context), "context(command='middle', parent='root')")


if __name__ == "__main__":
    unittest.main()
