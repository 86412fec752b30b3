"""In-memory OpportunityRepository for coordinator tests."""

from govcon_enrichment.models.opportunity import Opportunity


class InMemoryOpportunityRepository:
    """Dict-backed repository keyed by opportunity id."""

    def __init__(self, opportunities: list[Opportunity] | None = None):
        self.items: dict[str, Opportunity] = {}
        self.save_calls = 0
        for opportunity in opportunities or []:
            self.items[opportunity.id] = opportunity

    def save(self, opportunity: Opportunity) -> Opportunity:
        self.save_calls += 1
        self.items[opportunity.id] = opportunity
        return opportunity

    def find_by_solicitation_number(self, solicitation_number: str) -> Opportunity | None:
        for opportunity in self.items.values():
            if opportunity.solicitation_number == solicitation_number:
                return opportunity
        return None

    def find_needing_geocoding(self, limit: int) -> list[Opportunity]:
        pending = [
            opportunity
            for opportunity in self.items.values()
            if not opportunity.is_geocoded()
            and (
                opportunity.place_of_performance_city
                or opportunity.place_of_performance_state
                or opportunity.place_of_performance_zip
            )
        ]
        return pending[:limit]

    def count(self) -> int:
        return len(self.items)

    def count_geocoded(self) -> int:
        return sum(1 for opportunity in self.items.values() if opportunity.is_geocoded())
