"""Exceptions raised while resolving, verifying and deploying Tomcat artifacts."""


class ProvisioningError(Exception):
    """Base class for all provisioning failures."""


class UnknownVersionError(ProvisioningError):
    """The requested version is not present in the version table."""


class ChecksumMismatchError(ProvisioningError):
    """A downloaded artifact did not match its expected checksum."""


class ResolutionFailedError(ProvisioningError):
    """Every candidate URL for a version failed to download."""


class TargetExistsError(ProvisioningError):
    """The remote target directory already exists and force was not set."""


class RemoteSetupFailedError(ProvisioningError):
    """Preparing the remote staging/target directories failed."""


class RemoteCommandError(ProvisioningError):
    """Copying or extracting the artifact on the remote host failed."""


class SshToolsUnavailableError(ProvisioningError):
    """No usable remote shell / file copy tool pair was found on PATH."""
