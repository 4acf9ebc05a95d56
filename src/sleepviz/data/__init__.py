"""Survey dataset loading."""

from sleepviz.data.dataset import CORRELATION_FIELDS, SleepDataset, load_dataset

__all__ = [
    "CORRELATION_FIELDS",
    "SleepDataset",
    "load_dataset",
]
