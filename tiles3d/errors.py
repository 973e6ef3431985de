from __future__ import annotations


class TilesError(RuntimeError):
    """Base class for every decode/encode failure.

    ``offset`` is the byte offset into the outermost buffer and ``path`` the JSON
    path where the problem was detected; either may be None.
    """

    def __init__(self, message: str, *, offset: int | None = None, path: str | None = None) -> None:
        self.offset = offset
        self.path = path
        self.detail = message
        where = []
        if path is not None:
            where.append(f"at {path}")
        if offset is not None:
            where.append(f"at byte {offset}")
        super().__init__(f"{message} ({', '.join(where)})" if where else message)


class TruncatedInputError(TilesError):
    pass


class LengthMismatchError(TilesError):
    pass


class UnsupportedVersionError(TilesError):
    pass


class InvalidJsonError(TilesError):
    pass


class MissingFieldError(TilesError):
    pass


class MissingRequiredSemanticError(MissingFieldError):
    pass


class InvalidBoundingVolumeError(TilesError):
    pass


class UnalignedOffsetError(TilesError):
    pass


class OutOfBoundsError(TilesError):
    pass


class TypeMismatchError(TilesError):
    pass


class UnknownMagicError(TilesError):
    pass


class InvalidFieldError(TilesError):
    pass


class NestingTooDeepError(TilesError):
    pass
