class XcresolveError(RuntimeError):
    pass


# The path handed to project discovery does not exist or cannot be stat'd.
class DiscoveryError(XcresolveError):
    pass


# Input kinds that are recognised but deliberately not parsed (e.g. .ipa archives).
class UnsupportedInputError(XcresolveError, ValueError):
    pass
