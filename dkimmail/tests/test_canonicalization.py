# This software is provided 'as-is', without any express or implied
# warranty.  In no event will the author be held liable for any damages
# arising from the use of this software.
#
# Permission is granted to anyone to use this software for any purpose,
# including commercial applications, and to alter it and redistribute it
# freely, subject to the following restrictions:
#
# 1. The origin of this software must not be misrepresented; you must not
#    claim that you wrote the original software. If you use this software
#    in a product, an acknowledgment in the product documentation would be
#    appreciated but is not required.
# 2. Altered source versions must be plainly marked as such, and must not be
#    misrepresented as being the original software.
# 3. This notice may not be removed or altered from any source distribution.
#
# Copyright (c) 2011 William Grant <me@williamgrant.id.au>
#
# This has been modified from the original software.

import unittest

from dkimmail.canonicalization import (
    canonicalize_body,
    canonicalize_header,
    CanonicalizationPolicy,
    InvalidCanonicalizationPolicyError,
    Relaxed,
    Simple,
    )


class BaseCanonicalizationTest(unittest.TestCase):

    def assertCanonicalForm(self, expected, input):
        self.assertEqual(expected, self.func(expected))
        self.assertEqual(expected, self.func(input))


class TestSimpleAlgorithmHeaders(BaseCanonicalizationTest):

    func = staticmethod(Simple.canonicalize_headers)

    def test_untouched(self):
        test_headers = [(b'Foo  ', b'bar\r\n'), (b'Foo', b'baz\r\n')]
        self.assertCanonicalForm(
            test_headers,
            test_headers)

    def test_terminates_with_crlf(self):
        self.assertCanonicalForm(
            [(b'Foo', b' bar\r\n')],
            [(b'Foo', b' bar')])


class TestSimpleAlgorithmBody(BaseCanonicalizationTest):

    func = staticmethod(Simple.canonicalize_body)

    def test_strips_trailing_empty_lines_from_body(self):
        self.assertCanonicalForm(
            b'Foo  \tbar    \r\n',
            b'Foo  \tbar    \r\n\r\n')

    def test_adds_missing_crlf(self):
        self.assertCanonicalForm(
            b'Foo\r\n',
            b'Foo')

    def test_empty_body(self):
        self.assertCanonicalForm(b'\r\n', b'')
        self.assertCanonicalForm(b'\r\n', b'\r\n\r\n\r\n')

    def test_keeps_inner_empty_lines(self):
        self.assertCanonicalForm(
            b'Foo\r\n\r\n\r\nbar\r\n',
            b'Foo\r\n\r\n\r\nbar\r\n\r\n')


class TestRelaxedAlgorithmHeaders(BaseCanonicalizationTest):

    func = staticmethod(Relaxed.canonicalize_headers)

    def test_lowercases_names(self):
        self.assertCanonicalForm(
            [(b'foo', b'Bar\r\n'), (b'baz', b'Foo\r\n')],
            [(b'Foo', b'Bar\r\n'), (b'BaZ', b'Foo\r\n')])

    def test_unfolds_values(self):
        self.assertCanonicalForm(
            [(b'foo', b'Bar baz\r\n')],
            [(b'Foo', b'Bar\r\n baz\r\n')])

    def test_wsp_compresses_values(self):
        self.assertCanonicalForm(
            [(b'foo', b'Bar baz\r\n')],
            [(b'Foo', b'Bar \t baz\r\n')])

    def test_wsp_strips(self):
        self.assertCanonicalForm(
            [(b'foo', b'Bar baz\r\n')],
            [(b'Foo  ', b'   Bar \t baz   \r\n')])

    def test_empty_value(self):
        self.assertCanonicalForm(
            [(b'subject', b'\r\n')],
            [(b'Subject', b'  \r\n')])


class TestRelaxedAlgorithmBody(BaseCanonicalizationTest):

    func = staticmethod(Relaxed.canonicalize_body)

    def test_strips_trailing_wsp(self):
        self.assertCanonicalForm(
            b'Foo\r\nbar\r\n',
            b'Foo  \t\r\nbar\r\n')

    def test_wsp_compresses(self):
        self.assertCanonicalForm(
            b'Foo bar\r\n',
            b'Foo  \t  bar\r\n')

    def test_strips_trailing_empty_lines(self):
        self.assertCanonicalForm(
            b'Foo\r\nbar\r\n',
            b'Foo\r\nbar\r\n\r\n\r\n')

    def test_strips_whitespace_only_trailing_lines(self):
        self.assertCanonicalForm(
            b'Foo\r\n',
            b'Foo\r\n \t\r\n\t\r\n')

    def test_adds_missing_crlf(self):
        self.assertCanonicalForm(
            b'Foo bar\r\n',
            b'Foo bar \t')

    def test_empty_body_stays_empty(self):
        self.assertCanonicalForm(b'', b'')
        self.assertCanonicalForm(b'', b'\r\n\r\n')
        self.assertCanonicalForm(b'', b'  \r\n')

    def test_leading_wsp_compressed_not_removed(self):
        self.assertCanonicalForm(
            b' Foo\r\n',
            b' \t Foo\r\n')


class TestModuleFunctions(unittest.TestCase):

    headers = [
        (b'Subject', b'  Hello\r\n\t World  \r\n'),
        (b'X-Empty', b'\r\n'),
        (b'FROM', b' a@example.com\r\n'),
    ]
    bodies = [
        b'',
        b'\r\n',
        b'hello\r\n',
        b'hello  world \t\r\n\r\n \r\n',
        b'no final line break',
        b'\t indented\r\n\r\ngap\r\n',
    ]

    def test_header_idempotent(self):
        for mode in ('simple', 'relaxed'):
            for name, value in self.headers:
                once = canonicalize_header(name, value, mode)
                self.assertEqual(once, canonicalize_header(*once, mode=mode))

    def test_body_idempotent(self):
        for mode in (b'simple', b'relaxed'):
            for body in self.bodies:
                once = canonicalize_body(body, mode)
                self.assertEqual(once, canonicalize_body(once, mode))

    def test_relaxed_header(self):
        self.assertEqual(
            (b'subject', b'Hello World\r\n'),
            canonicalize_header(b'Subject', b'  Hello\r\n\t World  \r\n',
                                'relaxed'))

    def test_unknown_mode(self):
        self.assertRaises(
            InvalidCanonicalizationPolicyError,
            canonicalize_body, b'', 'nowsp')


class TestCanonicalizationPolicy(unittest.TestCase):

    def test_from_c_value(self):
        policy = CanonicalizationPolicy.from_c_value(b'relaxed/simple')
        self.assertIs(Relaxed, policy.header_algorithm)
        self.assertIs(Simple, policy.body_algorithm)
        self.assertEqual(b'relaxed/simple', policy.to_c_value())

    def test_body_defaults_to_simple(self):
        policy = CanonicalizationPolicy.from_c_value(b'relaxed')
        self.assertEqual(b'relaxed/simple', policy.to_c_value())

    def test_missing_defaults_to_simple(self):
        policy = CanonicalizationPolicy.from_c_value(None)
        self.assertEqual(b'simple/simple', policy.to_c_value())

    def test_invalid(self):
        self.assertRaises(
            InvalidCanonicalizationPolicyError,
            CanonicalizationPolicy.from_c_value, b'relaxed/simple/simple')
        self.assertRaises(
            InvalidCanonicalizationPolicyError,
            CanonicalizationPolicy.from_c_value, b'relaxed/bogus')
