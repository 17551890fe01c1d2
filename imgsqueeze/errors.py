"""Exception hierarchy for optimization runs."""

from __future__ import annotations


class ImgSqueezeError(Exception):
    """Base class for every error raised by imgsqueeze."""


class NoCandidateImages(ImgSqueezeError):
    """The container holds no PNG or JPEG objects."""


class AllAlreadyOptimized(ImgSqueezeError):
    """Every image in the container already carries the marker."""


class UserDeclined(ImgSqueezeError):
    """The batch confirmation was answered with no."""


class StorageError(ImgSqueezeError):
    """The object store rejected or failed a request."""


class DownloadFailure(StorageError):
    pass


class UploadFailure(StorageError):
    pass


class OptimizerInvocationFailure(ImgSqueezeError):
    """The optimizer binary could not be launched or did not finish in time."""


class UnsupportedFormat(ImgSqueezeError):
    """No optimizer handles the object's format."""
