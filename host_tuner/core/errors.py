class HostTunerError(Exception):
    """Base class for errors that end a host-tuner run."""

    exit_code = 1


class FatalError(HostTunerError):
    """Apply cannot continue, e.g. no network interface was found."""

    exit_code = 1


class ConfigError(HostTunerError):
    exit_code = 2
