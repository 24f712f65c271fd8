from __future__ import annotations


class CertificateError(RuntimeError):
    """Raised when a certificate cannot be generated."""


class TemplateAssetMissingError(FileNotFoundError):
    """Raised when a template's backing file is not on disk."""


class UnsupportedTemplateFormatError(ValueError):
    """Raised when a template asset is neither PNG/JPEG nor PDF."""


class TemplateInactiveError(CertificateError):
    """Raised when generation is attempted with a deactivated template."""


class TemplateDimensionMismatchError(ValueError):
    def __init__(self, declared: tuple[float, float], actual: tuple[float, float]):
        self.declared = declared
        self.actual = actual
        super().__init__(
            "Declared template size {}x{} does not match asset size {}x{}".format(
                declared[0], declared[1], actual[0], actual[1]
            )
        )


class InvalidTransitionError(CertificateError):
    """Raised when a certificate is moved to a state it cannot reach."""
