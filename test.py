import doctest
import sys
import unittest

import dkimmail
import dkimmail.canonicalization
import dkimmail.transport
from dkimmail.tests import test_suite

failures = 0
for module in (dkimmail, dkimmail.canonicalization, dkimmail.transport):
    failures += doctest.testmod(module).failed
result = unittest.TextTestRunner().run(test_suite())
sys.exit(0 if failures == 0 and result.wasSuccessful() else 1)
