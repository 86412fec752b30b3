"""Builders for upstream JSON bodies (Census geocoder, USAspending)."""

from typing import Any


class CensusPayloads:
    """Factory for Census geocoder response bodies."""

    @staticmethod
    def match(
        matched_address: str = "1600 PENNSYLVANIA AVE NW, WASHINGTON, DC, 20500",
        x: float | None = -77.0365,
        y: float | None = 38.8976,
        state: str | None = "11",
        county: str | None = "001",
        tract: str | None = "006202",
        city: str = "WASHINGTON",
        state_abbr: str = "DC",
        zip_code: str = "20500",
    ) -> dict[str, Any]:
        coordinates: dict[str, Any] = {}
        if x is not None:
            coordinates["x"] = x
        if y is not None:
            coordinates["y"] = y

        geographies: dict[str, Any] = {}
        if state is not None:
            geographies["States"] = [{"STATE": state, "NAME": "District of Columbia"}]
        if county is not None:
            geographies["Counties"] = [{"STATE": state, "COUNTY": county, "NAME": "County"}]
        if tract is not None:
            geographies["Census Tracts"] = [
                {"STATE": state, "COUNTY": county, "TRACT": tract, "GEOID": "11001006202"}
            ]

        return {
            "matchedAddress": matched_address,
            "coordinates": coordinates,
            "tigerLine": {"tigerLineId": "76225813", "side": "L"},
            "addressComponents": {"city": city, "state": state_abbr, "zip": zip_code},
            "geographies": geographies,
        }

    @staticmethod
    def response(*matches: dict[str, Any]) -> dict[str, Any]:
        return {
            "result": {
                "input": {"benchmark": {"benchmarkName": "Public_AR_Current"}},
                "addressMatches": list(matches),
            }
        }

    @staticmethod
    def no_match() -> dict[str, Any]:
        return {"result": {"input": {}, "addressMatches": []}}


class USAspendingPayloads:
    """Factory for spending_by_award page bodies."""

    @staticmethod
    def award(index: int = 1, **overrides: Any) -> dict[str, Any]:
        record = {
            "internal_id": 1000 + index,
            "Award ID": f"W911NF-24-C-{index:04d}",
            "Recipient Name": f"Recipient {index}",
            "Start Date": "2024-01-15",
            "End Date": "2030-01-14",
            "Award Amount": 250000.0 + index,
            "Description": f"Award description {index}",
            "Awarding Agency": "Department of Defense",
            "Awarding Sub Agency": "Department of the Army",
            "Contract Award Type": "Definitive Contract",
            "Award Type": "Definitive Contract",
            "recipient_uei": f"UEI{index:09d}",
            "Place of Performance City": "HUNTSVILLE",
            "Place of Performance State": "AL",
            "Place of Performance Zip": "35808",
            "Place of Performance Country": "USA",
            "NAICS Code": "541715",
            "NAICS Description": "Research and Development",
            "PSC Code": "AC12",
            "generated_internal_id": f"CONT_AWD_W911NF24C{index:04d}_9700",
        }
        record.update(overrides)
        return record

    @staticmethod
    def page(
        records: list[Any],
        page: int = 1,
        has_next: bool = False,
        total: int | None = None,
        limit: int = 100,
    ) -> dict[str, Any]:
        return {
            "limit": limit,
            "results": records,
            "page_metadata": {
                "page": page,
                "total": total if total is not None else len(records),
                "limit": limit,
                "next": page + 1 if has_next else None,
                "previous": page - 1 if page > 1 else None,
                "hasNext": has_next,
                "hasPrevious": page > 1,
            },
            "messages": [],
        }

    @staticmethod
    def pages(page_count: int, per_page: int, *, last_has_next: bool = False) -> list[dict]:
        """Consecutive full pages; only the last one may stop reporting hasNext."""
        bodies = []
        for page in range(1, page_count + 1):
            start = (page - 1) * per_page
            records = [USAspendingPayloads.award(start + i + 1) for i in range(per_page)]
            has_next = page < page_count or last_has_next
            bodies.append(
                USAspendingPayloads.page(
                    records,
                    page=page,
                    has_next=has_next,
                    total=page_count * per_page,
                    limit=per_page,
                )
            )
        return bodies
