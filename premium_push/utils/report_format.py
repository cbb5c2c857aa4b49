from typing import List

from premium_push.schemas.report import Report


def _yes_no(value: bool) -> str:
    return "YES" if value else "NO"


def render_report(report: Report) -> str:
    """Plain-text rendering of a premium check, for terminals and logs."""
    ent = report.entitlement
    lines: List[str] = [
        f"Premium check for {report.email} (user {report.user_id}) at {report.checked_at.isoformat()}",
        f"  premium: {_yes_no(ent.is_premium)}  trial: {_yes_no(ent.is_trial)}  access: {_yes_no(ent.has_access)}",
        f"  result: {report.status.value} ({report.reason})",
        f"  linked devices ({len(report.linkage.linked)}):",
    ]
    for device in report.linkage.linked:
        lines.append(f"    - {device.device_id} ({device.platform}) token: {device.token_preview}")
    if report.linkage.linked_without_token:
        lines.append(f"  linked without token: {', '.join(report.linkage.linked_without_token)}")

    warning = report.linkage.integrity_warning
    if warning:
        lines.append(f"  WARNING: unlinked devices: {', '.join(warning.device_ids)}")
        lines.append(f"    {warning.message}")

    if report.dispatch:
        summary = report.dispatch.summary
        lines.append(
            f"  dispatch: total={summary.total} delivered={summary.delivered} "
            f"failed={summary.failed} skipped={summary.skipped}"
        )
        for outcome in report.dispatch.outcomes:
            detail = f" [{outcome.error_kind.value}]" if outcome.error_kind else ""
            lines.append(f"    - {outcome.device_id}: {outcome.status.value}{detail}")
        if summary.configuration_warning:
            lines.append(f"  WARNING: {summary.configuration_warning}")
    if report.deactivated_device_ids:
        lines.append(f"  deactivated: {', '.join(report.deactivated_device_ids)}")
    return "\n".join(lines)
