class CodeNestError(Exception):
    """Base class for errors raised by the progress core"""


class InvalidAmountError(CodeNestError):
    """XP or activity delta was negative"""


class EmptyCodeError(CodeNestError):
    """Submitted code is empty or whitespace only"""


class NoTestCasesError(CodeNestError):
    """Topic has no test cases to verify against"""


class TopicNotFoundError(CodeNestError):
    pass


class ProgressConflictError(CodeNestError):
    """Concurrent writers kept winning the version check on a progress document"""
