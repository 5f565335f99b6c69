from xcresolve.config import Config
from xcresolve.errors import DiscoveryError, UnsupportedInputError, XcresolveError
