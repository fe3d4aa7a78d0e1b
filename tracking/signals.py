"""Selection events published by the drill-down navigator.

Every signal is sent with the navigator as ``sender`` and the resulting
``state`` as keyword argument; the shell listens to them to update
breadcrumbs and route state.
"""

from django.dispatch import Signal

# farm, state
farm_selected = Signal()
# batch, state
batch_selected = Signal()
# building, state
building_selected = Signal()

returned_to_farms = Signal()
returned_to_batches = Signal()
returned_to_buildings = Signal()

# level, error, notice, state
selection_lost = Signal()
