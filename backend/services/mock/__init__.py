from services.mock.coc import mock_coc_extract, parse_limit_to_number

__all__ = [
    "mock_coc_extract",
    "parse_limit_to_number",
]
