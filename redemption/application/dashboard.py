"""
Dashboard / finance read layer.

Loads live rows for one owner and hands them to the pure functions in
finance.py. No mutations.
"""
from datetime import date

from sqlalchemy.orm import Session

from redemption.application.entities import entity_to_dict, list_live
from redemption.application.finance import (
    FinanceData,
    build_dashboard_summary,
    expense_breakdown_by_category,
    expense_breakdown_by_name,
    credit_utilization,
    format_percentage,
    subscriptions_monthly_total,
    is_trial_expiring,
    days_until_due,
)
from redemption.config import get_settings
from redemption.domain.entities import EntityKind
from redemption.utils.money import quantize_money


class DashboardService:
    def __init__(self, db: Session):
        self.db = db

    def load_finance_data(self, account_id: int) -> FinanceData:
        return FinanceData(
            incomes=list_live(self.db, account_id, EntityKind.INCOME),
            debts=list_live(self.db, account_id, EntityKind.DEBT),
            credits=list_live(self.db, account_id, EntityKind.CREDIT),
            recurring_expenses=list_live(self.db, account_id, EntityKind.RECURRING_EXPENSE),
            one_time_bills=list_live(self.db, account_id, EntityKind.ONE_TIME_BILL),
            banks=list_live(self.db, account_id, EntityKind.BANK),
        )

    def get_summary(self, account_id: int, today: date | None = None) -> dict:
        """Totals, upcoming bills and bank balances."""
        settings = get_settings()
        data = self.load_finance_data(account_id)
        summary = build_dashboard_summary(data, today, window=settings.UPCOMING_WINDOW_DAYS)
        return summary.to_dict()

    def get_all_finance_data(self, account_id: int, today: date | None = None) -> dict:
        """
        Every live finance row plus the derived figures.

        Returns:
            incomes / debts / credits / recurring_expenses / one_time_bills / banks: list[dict]
            summary: dashboard summary
            breakdown: {by_category, by_name}
            credit_utilization: {credit_id: "12.50%"}
            expiring_trials: list[dict]
            subscriptions_monthly: accounts' monthly cost
        """
        settings = get_settings()
        data = self.load_finance_data(account_id)
        summary = build_dashboard_summary(data, today, window=settings.UPCOMING_WINDOW_DAYS)

        by_category, category_total = expense_breakdown_by_category(data.recurring_expenses)
        by_name, _ = expense_breakdown_by_name(data.recurring_expenses)

        expiring = [
            {
                "id": e.id,
                "name": e.name,
                "trial_type": e.trial_type,
                "trial_end_date": e.trial_end_date.isoformat(),
                "days_left": days_until_due(e.trial_end_date, today),
            }
            for e in data.recurring_expenses
            if is_trial_expiring(e.trial_type, e.trial_end_date, today, settings.TRIAL_EXPIRING_DAYS)
        ]

        accounts = list_live(self.db, account_id, EntityKind.ACCOUNT)

        return {
            "incomes": [entity_to_dict(r) for r in data.incomes],
            "debts": [entity_to_dict(r) for r in data.debts],
            "credits": [entity_to_dict(r) for r in data.credits],
            "recurring_expenses": [entity_to_dict(r) for r in data.recurring_expenses],
            "one_time_bills": [entity_to_dict(r) for r in data.one_time_bills],
            "banks": [entity_to_dict(r) for r in data.banks],
            "summary": summary.to_dict(),
            "breakdown": {
                "by_category": [i.to_dict() for i in by_category],
                "by_name": [i.to_dict() for i in by_name],
                "total": format(quantize_money(category_total), "f"),
            },
            "credit_utilization": {
                str(c.id): format_percentage(credit_utilization(c)) for c in data.credits
            },
            "expiring_trials": expiring,
            "subscriptions_monthly": format(subscriptions_monthly_total(accounts), "f"),
        }
