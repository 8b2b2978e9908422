"""
Utils module behavioral tests (Unset sentinel, coalesce, rename).

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from commandant.utils import Unset, UnsetType, coalesce, rename


class TestUnset(TestCase):
    """Behavioral tests for the Unset sentinel."""

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)

    def testFalseyAndPrintable(self):
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testFinal(self):
        with self.assertRaises(TypeError):
            type("Subclass", (UnsetType,), {})


class TestHelpers(TestCase):
    """Behavioral tests for coalesce() and rename()."""

    def testCoalesce(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)

    def testRenameFunctionForm(self):
        def hook(process):
            pass

        self.assertIs(rename(hook, "release"), hook)
        self.assertEqual(hook.__name__, "release")
        self.assertEqual(hook.__qualname__, "release")

    def testRenameDecoratorForm(self):
        @rename("release")
        def hook(process):
            pass

        self.assertEqual(hook.__name__, "release")

    def testRenameRejectsBadArguments(self):
        with self.assertRaises(TypeError):
            rename(1, "x")
        with self.assertRaises(TypeError):
            rename(len, 1)
        with self.assertRaises(TypeError):
            rename()


if __name__ == "__main__":
    unittest.main()
