from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import SalaryRuleType
from .model import SalaryRule


def _specificity(rule: SalaryRule) -> int:
    # site+role (3) > site (2) > role (1) > global (0)
    return (2 if rule.site_id is not None else 0) + (1 if rule.role else 0)


def select_rule(
    rules: Sequence[SalaryRule],
    rule_type: SalaryRuleType,
    *,
    site_id: Optional[int],
    role: Optional[str],
) -> Optional[SalaryRule]:
    """Most specific active rule of `rule_type` that applies; newest wins ties."""
    candidates = [
        r
        for r in rules
        if r.is_active
        and r.rule_type == rule_type
        and (r.site_id is None or r.site_id == site_id)
        and (not r.role or r.role == role)
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda r: (_specificity(r), r.rule_id))
