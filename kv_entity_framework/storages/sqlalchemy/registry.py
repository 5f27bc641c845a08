from typing import Dict, Type

import attr


@attr.s(auto_attribs=True)
class SaRegistry:
    kinds_models: Dict[str, Type] = attr.Factory(dict)
