""" putget Error classes and status codes. """


# status codes surfaced by the matrix driver
PIO_NOERR = 0
ERR_AWFUL = 1111
ERR_WRONG = 1112

# used when the storage library raised without a status code
UNKNOWN_STORAGE_CODE = -1


class PutGetBaseError(Exception):
    """
    Base exception class for putget errors in Python.

    Every error carries a non-zero ``code`` and may be labelled by the
    matrix driver with the coordinates of the cell that raised it.
    """
    code = ERR_AWFUL

    def __init__(self, msg="", code=None):
        super(PutGetBaseError, self).__init__(msg)
        self.msg = msg
        if code is not None:
            self.code = code
        self.cell = None
        self.kind = None
        self.phase = None

    def label(self, cell=None, kind=None, phase=None):
        """Attach matrix coordinates; fields already set are kept."""
        if self.cell is None:
            self.cell = cell
        if self.kind is None:
            self.kind = kind
        if self.phase is None:
            self.phase = phase
        return self

    def coordinates(self):
        parts = []
        if self.cell is not None:
            parts.append(str(self.cell))
        if self.kind is not None:
            parts.append("kind=%s" % self.kind.name)
        if self.phase is not None:
            parts.append("phase=%s" % self.phase)
        return " ".join(parts)

    def __str__(self):
        coords = self.coordinates()
        if coords:
            return "[%s] %s (code %d)" % (coords, self.msg, self.code)
        return "%s (code %d)" % (self.msg, self.code)


class SchemaError(PutGetBaseError):
    """
    Raised when creating the dataset or defining a dimension or variable
    fails at the storage layer.
    """
    pass


class UnsupportedKindError(SchemaError):
    """Raised when addressing a kind the dataset's flavor does not define."""

    def __init__(self, kind, flavor):
        self.flavor = flavor
        super(UnsupportedKindError, self).__init__(
            "%s variables are not defined for flavor %s" % (kind.name, flavor),
            code=ERR_WRONG)
        self.kind = kind


class IoError(PutGetBaseError):
    """
    Raised when a write, read, sync, close or open call fails at the
    storage layer. ``code`` is the storage status code, unchanged.
    """

    def __init__(self, operation, msg="", code=UNKNOWN_STORAGE_CODE):
        self.operation = operation
        super(IoError, self).__init__("%s failed: %s" % (operation, msg), code=code)


class DataMismatch(PutGetBaseError):
    """
    Raised when a successful read returns a value unequal to its fixture.
    """
    code = ERR_WRONG

    def __init__(self, kind, expected, actual, msg=None):
        self.expected = expected
        self.actual = actual
        if msg is None:
            msg = "read back %s, expected %s" % (_preview(actual), _preview(expected))
        super(DataMismatch, self).__init__(msg)
        self.kind = kind


class TeamSizeError(PutGetBaseError):
    """Raised when the collective team is smaller than the test requires."""

    def __init__(self, size, min_size):
        self.size = size
        self.min_size = min_size
        super(TeamSizeError, self).__init__(
            "test requires at least %d tasks, but the team has %d" % (min_size, size))


def _preview(value):
    text = repr(value)
    if len(text) > 60:
        text = text[:57] + "..."
    return text
