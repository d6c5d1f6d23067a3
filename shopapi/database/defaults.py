from typing import Any, Dict, List

default_list: List[Dict[str, Any]] = [
    {
        "object_name": "CATEGORY",
        "type": "NOT_NULL",
        "key": "name",
        "value": "Food",
        "data": {"description": "Food products"},
    },
    {
        "object_name": "CATEGORY",
        "type": "NOT_NULL",
        "key": "name",
        "value": "Beverages",
        "data": {"description": "Beverage products"},
    },
]
