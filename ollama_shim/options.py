"""Generation option mapping."""

import logging
from typing import Optional

from .errors import ConflictingSamplingParametersError
from .models import GenerationOptions, Greedy, TopK, TopP

logger = logging.getLogger(__name__)


def build_options(
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    top_p: Optional[float] = None,
    top_k: Optional[int] = None,
) -> GenerationOptions:
    """
    Build backend generation options from loose request parameters.

    temperature and max_tokens pass through untouched. top_p and top_k
    each select a sampling strategy and may not be combined; with
    neither, sampling is greedy.
    """
    if top_p is not None and top_k is not None:
        raise ConflictingSamplingParametersError()

    if top_p is not None:
        sampling = TopP(top_p)
    elif top_k is not None:
        sampling = TopK(top_k)
    else:
        sampling = Greedy()

    options = GenerationOptions(
        temperature=temperature,
        max_response_tokens=max_tokens,
        sampling=sampling,
    )
    logger.debug(f"Created generation options: {options}")
    return options
