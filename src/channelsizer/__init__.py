import importlib.metadata

__version__ = importlib.metadata.version("channel-sizer")

from .models import (
    ChannelInput,
    ChannelInputSchema,
    ChannelResult,
    BatchSummary,
)
from .workflows import (
    process_channel,
    process_batch,
    process_channel_async,
    process_batch_async,
    BatchChannelSizing,
)
