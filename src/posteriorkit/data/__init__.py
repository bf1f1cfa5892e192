"""Labelled containers for inference data and the converters that build them."""

from posteriorkit.data.converters import (
    SampleSource,
    convert_to_dataset,
    convert_to_inference_data,
    dict_of_arrays,
    dict_to_dataset,
    from_dict,
)
from posteriorkit.data.dataset import Dataset, make_attrs
from posteriorkit.data.dimensions import (
    as_dimension,
    generate_dims,
    index_to_indices,
    ndarray_to_dataarray,
)
from posteriorkit.data.inference_data import SUPPORTED_GROUPS, WARMUP_GROUPS, InferenceData
