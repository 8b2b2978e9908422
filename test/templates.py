"""
Templates module behavioral tests (placeholder expansion).

Scope
- Validate expansion in bare, single-quoted and double-quoted contexts.
- Validate argument accounting across argument vectors.
- Validate the faults raised for bad argument counts and types.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (expand, render).
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from commandant.faults import FaultCode, PlaceholderCountError, UnusedArgumentsError, TemplateError
from commandant.templates import expand, render


class TestExpand(TestCase):
    """Behavioral tests for expand()."""

    def testWithoutPlaceholdersIsIdentity(self):
        for template in ("ls -la", "echo 'a b' \"$HOME\"", "printf '%%d'", ""):
            self.assertEqual(expand(template), template)

    def testBarePlaceholder(self):
        self.assertEqual(expand("touch %s", "a b;rm -rf x"), "touch a\\ b\\;rm\\ -rf\\ x")

    def testBarePlaceholderKeepsVariables(self):
        self.assertEqual(expand("echo %s", "${HOME}/$abc--"), "echo ${HOME}/$abc--")

    def testSingleQuotedPlaceholderEscapesVariables(self):
        self.assertEqual(expand("echo '--%s--'", "${HOME}/$abc--"), "echo '--'\\$\\{HOME\\}/\\$abc--'--'")

    def testSingleQuotedPlaceholderCannotBreakOut(self):
        self.assertEqual(expand("echo '%s'", "x'; id; '"), "echo x\\'\\;\\ id\\;\\ \\'")

    def testDoubleQuotedPlaceholderKeepsVariables(self):
        self.assertEqual(expand('echo "%s!"', "$USER a"), 'echo $USER\\ a"!"')

    def testEmptyQuotedResultKeepsQuotes(self):
        self.assertEqual(expand("echo '%s'", ""), "echo ''")

    def testEscapedPlaceholderIsLiteral(self):
        self.assertEqual(expand("printf \\%s %s", "x"), "printf \\%s x")

    def testSeveralPlaceholdersInOneToken(self):
        self.assertEqual(expand("cp %s %s", "a b", "c"), "cp a\\ b c")


class TestRender(TestCase):
    """Behavioral tests for render() and argument accounting."""

    def testConsumesAcrossElements(self):
        self.assertEqual(render(["cp", "%s", "--to=%s"], "one", "two"), ["cp", "one", "--to=two"])

    def testElementsWithoutPlaceholdersAreCopied(self):
        self.assertEqual(render(["sh", "-c", "echo %s"], "x y"), ["sh", "-c", "echo x\\ y"])

    def testTooFewArguments(self):
        with self.assertRaises(PlaceholderCountError) as context:
            render(["%s", "%s"], "one")
        self.assertIsInstance(context.exception, IndexError)
        self.assertIsInstance(context.exception, TemplateError)
        self.assertEqual(context.exception.expected, 2)
        self.assertEqual(context.exception.given, 1)
        self.assertIs(context.exception.code, FaultCode.PLACEHOLDER_MISMATCH)

    def testTooManyArguments(self):
        with self.assertRaises(UnusedArgumentsError) as context:
            expand("echo %s", "one", "two")
        self.assertEqual(context.exception.unused, ("two",))

    def testRejectsNonStringArguments(self):
        with self.assertRaises(TypeError):
            expand("echo %s", 1)
        with self.assertRaises(TypeError):
            expand("echo %s", b"x")

    def testRejectsStringVector(self):
        with self.assertRaises(TypeError):
            render("echo %s", "x")


if __name__ == "__main__":
    unittest.main()
