"""
Escaping module behavioral tests (classifier, scanner, escaper).

Scope
- Validate the bare-safe character class and its immutability.
- Validate the variable scanner on simple, braced and malformed references.
- Validate escaping with and without variable preservation.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (escape, scan, is_bare_safe, BARE_SAFE, IDENTIFIER).
"""

from __future__ import annotations

import string
import unittest
from unittest import TestCase

from commandant.escaping import BARE_SAFE, IDENTIFIER, escape, is_bare_safe, scan


class TestClassifier(TestCase):
    """Behavioral tests for the character classes."""

    def testBareSafeMembers(self):
        for char in string.ascii_letters + string.digits + "_#%+-.~/:=":
            self.assertTrue(is_bare_safe(char), char)

    def testBareSafeRejectsShellSyntax(self):
        for char in " \t\n$`'\"\\;&|<>()[]{}*?!^,@":
            self.assertFalse(is_bare_safe(char), repr(char))

    def testClassesAreFrozen(self):
        self.assertIsInstance(BARE_SAFE, frozenset)
        self.assertIsInstance(IDENTIFIER, frozenset)
        self.assertLessEqual(IDENTIFIER, BARE_SAFE)
        self.assertNotIn("$", BARE_SAFE)


class TestScanner(TestCase):
    """Behavioral tests for the variable-reference scanner."""

    def flags(self, raw):
        return "".join("1" if reference else "0" for _, reference in scan(raw))

    def testSimpleReference(self):
        self.assertEqual(self.flags("a$HOME-"), "0111110")

    def testBracedReference(self):
        self.assertEqual(self.flags("${HOME}/"), "11111110")

    def testLoneDollarIsNotReference(self):
        self.assertEqual(self.flags("$ $- $"), "000000")

    def testBracedStopsAtForeignCharacter(self):
        # "${HOME" is a reference, ":-x}" is not
        self.assertEqual(self.flags("${HOME:-x}"), "1111110000")

    def testReferenceAfterReference(self):
        self.assertEqual(self.flags("$A$B"), "1111")

    def testCharactersAreReportedInOrder(self):
        raw = "x${y}$z w"
        self.assertEqual("".join(char for char, _ in scan(raw)), raw)


class TestEscape(TestCase):
    """Behavioral tests for escape()."""

    def testPreservesVariables(self):
        self.assertEqual(escape("abc$HOME--"), "abc$HOME--")
        self.assertEqual(escape("${HOME}/$abc--"), "${HOME}/$abc--")

    def testEscapesVariablesWhenAsked(self):
        self.assertEqual(escape("abc$HOME--", preserve=False), "abc\\$HOME--")
        self.assertEqual(escape("${HOME}/$abc--", preserve=False), "\\$\\{HOME\\}/\\$abc--")

    def testModesAgreeWithoutReferences(self):
        for raw in ("plain", "a b", "x;y|z", "it's", "$", "100%", "{}"):
            self.assertEqual(escape(raw, preserve=True), escape(raw, preserve=False), raw)

    def testBareSafeTextIsUnchanged(self):
        for raw in ("", "abc", "a-b_c.d", "/usr/bin:~/x", "k=v", "#1%+"):
            self.assertEqual(escape(raw), raw)
            self.assertEqual(escape(raw, preserve=False), raw)

    def testUnsafeTextIsChanged(self):
        self.assertEqual(escape("a b"), "a\\ b")
        self.assertEqual(escape("a;rm -rf x"), "a\\;rm\\ -rf\\ x")
        self.assertEqual(escape("`id`"), "\\`id\\`")
        self.assertEqual(escape("it's"), "it\\'s")

    def testEscapingIsIdempotentOnSafeOutput(self):
        once = escape("abc-def/ghi")
        self.assertEqual(escape(once), once)

    def testNewlineIsSingleQuoted(self):
        self.assertEqual(escape("a\nb"), "a'\n'b")

    def testMalformedBracedReferenceIsNeutralized(self):
        self.assertEqual(escape("${HOME:-$(ls)}bb"), "${HOME:-\\$\\(ls\\)\\}bb")

    def testRejectsNonStrings(self):
        with self.assertRaises(TypeError):
            escape(b"abc")
        with self.assertRaises(TypeError):
            escape(None)


if __name__ == "__main__":
    unittest.main()
