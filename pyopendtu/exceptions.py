class PyOpenDTUException(Exception):
    pass


class InvalidConfigurationParameter(PyOpenDTUException):
    pass


class NetworkFailure(PyOpenDTUException):
    """Timeout, connection error or non-2xx response from a device API"""
    pass


class DecodeFailure(PyOpenDTUException):
    """Malformed JSON or a payload that does not have the expected shape"""
    pass


class StorageFailure(PyOpenDTUException):
    """Settings or cache file could not be read or written"""
    pass


class SettingsFileError(StorageFailure):
    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Unable to parse settings file {path}: {reason}")
