# easy_ops/models/__init__.py

from .profiles import *
from .inventory import *
from .ledger import *
from .sales import *
from .webhooks import *
from .dates import *
# import every model file here
