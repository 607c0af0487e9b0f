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

import smtplib
import socket
import unittest
from unittest import mock

from dkimmail.errors import TransportError
from dkimmail.transport import deliver, split_address


class TestSplitAddress(unittest.TestCase):

    def test_host_and_port(self):
        self.assertEqual(('mx.example.com', 2525),
                         split_address('mx.example.com:2525'))

    def test_default_port(self):
        self.assertEqual(('mx.example.com', 25),
                         split_address('mx.example.com'))

    def test_ipv6(self):
        self.assertEqual(('::1', 587), split_address('[::1]:587'))
        self.assertEqual(('::1', 25), split_address('::1'))

    def test_bad_port(self):
        self.assertRaises(ValueError, split_address, 'mx.example.com:smtp')
        self.assertRaises(ValueError, split_address, 'mx.example.com:0')
        self.assertRaises(ValueError, split_address, ':25')


@mock.patch('smtplib.SMTP')
class TestDeliver(unittest.TestCase):

    def session(self, smtp_class):
        return smtp_class.return_value.__enter__.return_value

    def test_sends(self, smtp_class):
        self.session(smtp_class).sendmail.return_value = {}
        refused = deliver('mx.example.com:2525', 'a@example.com',
                          ['b@example.org'], b'signed message')
        self.assertEqual({}, refused)
        smtp_class.assert_called_once_with('mx.example.com', 2525)
        self.session(smtp_class).sendmail.assert_called_once_with(
            'a@example.com', ['b@example.org'], b'signed message')

    def test_timeout(self, smtp_class):
        deliver('mx.example.com', 'a@example.com', ['b@example.org'], b'x',
                timeout=10)
        smtp_class.assert_called_once_with('mx.example.com', 25, timeout=10)

    def test_smtp_error(self, smtp_class):
        self.session(smtp_class).sendmail.side_effect = \
            smtplib.SMTPRecipientsRefused({'b@example.org': (550, b'no')})
        self.assertRaises(
            TransportError, deliver, 'mx.example.com', 'a@example.com',
            ['b@example.org'], b'x')

    def test_connection_error(self, smtp_class):
        smtp_class.side_effect = ConnectionRefusedError(111, 'refused')
        self.assertRaisesRegex(
            TransportError, 'refused', deliver, 'mx.example.com',
            'a@example.com', ['b@example.org'], b'x')

    def test_dns_error(self, smtp_class):
        smtp_class.side_effect = socket.gaierror(-2, 'Name or service not known')
        self.assertRaises(
            TransportError, deliver, 'nowhere.invalid', 'a@example.com',
            ['b@example.org'], b'x')

    def test_bad_address(self, smtp_class):
        self.assertRaises(
            TransportError, deliver, 'mx.example.com:smtp', 'a@example.com',
            ['b@example.org'], b'x')
        smtp_class.assert_not_called()
