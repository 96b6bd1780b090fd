from dirhealth.infrastructure.powershell.runner import (
    PowerShellRunner,
    as_list,
    parse_timestamp,
)

__all__ = ["PowerShellRunner", "as_list", "parse_timestamp"]
