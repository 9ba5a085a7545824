import functools
import inspect
import pickle
import unittest

import adb_host.exceptions


class TestExceptionSerialization(unittest.TestCase):
    def __test_serialize_one_exc_cls(exc_cls):
        # Work out how many args we need to instantiate this object
        try:
            exc_required_arity = len(inspect.getfullargspec(exc_cls.__init__).args)
        except TypeError:
            # This could be a slot wrapper, which means `__init__` wasn't overridden by the exception subclass
            exc_required_arity = 0
        # Don't try to provide `self` - we assume strings will be fine here
        fake_args = ("foo", ) * (exc_required_arity - 1)
        # Instantiate the exception object and then attempt a serializion cycle
        # using `pickle` - we mainly care about whether this blows up or not
        exc_obj = exc_cls(*fake_args)
        pickled_exc_data = pickle.dumps(exc_obj)
        depickled_exc_obj = pickle.loads(pickled_exc_data)
        assert type(depickled_exc_obj) is exc_cls

    for __obj in adb_host.exceptions.__dict__.values():
        if isinstance(__obj, type) and issubclass(__obj, BaseException):
            __test_method = functools.partial(
                __test_serialize_one_exc_cls, __obj
            )
            __test_name = "test_serialize_{}".format(__obj.__name__)
            locals()[__test_name] = __test_method

    def test_command_failure_message(self):
        exc_obj = adb_host.exceptions.AdbCommandFailureException('no such file')
        self.assertEqual(str(exc_obj), 'no such file')
        self.assertEqual(str(pickle.loads(pickle.dumps(exc_obj))), 'no such file')


class TestExceptionHierarchy(unittest.TestCase):
    def test_protocol_errors(self):
        self.assertTrue(issubclass(adb_host.exceptions.AdbCommandFailureException, adb_host.exceptions.AdbProtocolError))
        self.assertTrue(issubclass(adb_host.exceptions.InvalidResponseError, adb_host.exceptions.AdbProtocolError))

    def test_validation_errors(self):
        self.assertTrue(issubclass(adb_host.exceptions.DevicePathInvalidError, adb_host.exceptions.AdbValidationError))
        self.assertTrue(issubclass(adb_host.exceptions.InvalidForwardTargetError, adb_host.exceptions.AdbValidationError))

    def test_command_too_long(self):
        self.assertTrue(issubclass(adb_host.exceptions.CommandTooLongError, ValueError))
        self.assertFalse(issubclass(adb_host.exceptions.CommandTooLongError, adb_host.exceptions.AdbProtocolError))


if __name__ == '__main__':
    unittest.main()
