from .shift import Shift, ShiftRead, ShiftStatus
from .site import Site
from .worker import Worker, WorkerRead, WorkerRole
