"""Static, externally supplied reference tables.

Data that never comes from an API call: hand-maintained coordinate fixes for
locations no service can place, LocID merges for known data-entry splits, and
conservation statuses.

Adding a new table:
1. Add a ``load_*`` function to ``reference/tables.py``
2. Re-export it from this ``__init__.py`` and add a path to ``Settings``
"""

from birdbase.reference.tables import load_conservation_statuses as load_conservation_statuses
from birdbase.reference.tables import load_coordinate_overrides as load_coordinate_overrides
from birdbase.reference.tables import load_location_remaps as load_location_remaps
