"""
This package provides utilities supporting the career analysis requester.

The modules within this package handle specific concerns such as:
- `constants`: Accepted profile and payload value sets, and messages.
- `data_utils`: YAML loading and cleaning/parsing of model output.
- `prompts`: The prompt template sent to the language model.
"""
