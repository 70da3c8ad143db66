class DbnavError(Exception):
    pass


class FetchFailed(DbnavError):
    pass


class ConnectivityFailed(DbnavError):
    pass


class CredentialUnavailable(DbnavError):
    pass


class ValidationFailed(DbnavError, ValueError):
    pass
