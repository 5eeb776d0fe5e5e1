class ArcLinkError(Exception):
    pass


class NetworkError(ArcLinkError):
    """Unreachable host, timeout, non-2xx response or an unreadable body."""


class FileSystemError(ArcLinkError):
    pass


class InstallError(FileSystemError):
    pass


class UninstallError(FileSystemError):
    pass


class InUseError(ArcLinkError):
    """The game is running, so its files cannot be touched."""


class ParseError(ArcLinkError):
    pass


class NotFoundError(ArcLinkError):
    pass
