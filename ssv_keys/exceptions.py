# Errors raised by the key-shares core. Every error is raised at the point that
# detects it; nothing here is retried or coerced into a generic failure.


class SSVKeysError(Exception):

    # Set when the error was raised while loading an item of a document
    item_index = None

    def __init__(self, message):
        self.message = message
        self._detail = message
        super().__init__(message)

    def __repr__(self):
        return "{0}({1!r})".format(self.__class__.__name__, self.message)

    def at_item(self, index):
        self.item_index = index
        self.message = "shares[{0}]: {1}".format(index, self._detail)
        self.args = (self.message,)
        return self


# Keystore

class InvalidKeystoreFormatError(SSVKeysError):
    pass


class InvalidPasswordError(SSVKeysError):

    def __init__(self, message="Invalid keystore password"):
        super().__init__(message)


class InvalidPrivateKeyError(SSVKeysError):

    def __init__(self, message="Private key is not a BLS12-381 scalar"):
        super().__init__(message)


# Operators

class OperatorCountMismatchError(SSVKeysError):

    def __init__(self, operator_ids, operator_keys):
        self.operator_ids = list(operator_ids)
        self.operator_keys = list(operator_keys)
        super().__init__(
            "Mismatch amount of operator ids ({0}) and operator keys ({1})".format(
                len(self.operator_ids), len(self.operator_keys)))


class InvalidOperatorIdError(SSVKeysError):

    def __init__(self, operator_id, message=None):
        self.operator_id = operator_id
        super().__init__(message or "Invalid operator id: {0!r}".format(operator_id))


class InvalidOperatorKeyError(SSVKeysError):

    def __init__(self, operator_id, message=None):
        self.operator_id = operator_id
        super().__init__(
            message or "Operator {0} public key is not a valid RSA public key".format(operator_id))


class OrderingError(SSVKeysError):

    def __init__(self, duplicate_ids):
        self.duplicate_ids = sorted(set(duplicate_ids))
        super().__init__(
            "Duplicate operator ids prevent a total order: {0}".format(self.duplicate_ids))


# Key-shares document. These name the offending field.

class KeySharesError(SSVKeysError):

    def __init__(self, field, detail):
        self.field = field
        self.detail = detail
        super().__init__("{0}: {1}".format(field, detail) if field else detail)


class ArrayShapeError(KeySharesError):
    pass


class SchemaError(KeySharesError):
    pass


class InvalidPublicKeyError(KeySharesError):
    pass


class InvalidEncryptedShareError(KeySharesError):
    pass


class InvalidOwnerAddressError(KeySharesError):
    pass


class InvalidPayloadContextError(KeySharesError):
    pass


class UnsupportedVersionError(KeySharesError):

    def __init__(self, version, supported):
        self.version = version
        self.supported = tuple(supported)
        super().__init__(
            "version",
            "unsupported version {0!r}, expected one of {1}".format(version, list(self.supported)))
