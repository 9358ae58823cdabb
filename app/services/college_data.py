"""Static college reference data: editorial popular list, offline fallback, US state table."""
from __future__ import annotations

from app.schemas.college import CollegeRecord, Coordinates


US = "United States"

US_STATE_CODES: dict[str, str] = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR", "california": "CA",
    "colorado": "CO", "connecticut": "CT", "delaware": "DE", "florida": "FL", "georgia": "GA",
    "hawaii": "HI", "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA",
    "kansas": "KS", "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS", "missouri": "MO",
    "montana": "MT", "nebraska": "NE", "nevada": "NV", "new hampshire": "NH", "new jersey": "NJ",
    "new mexico": "NM", "new york": "NY", "north carolina": "NC", "north dakota": "ND", "ohio": "OH",
    "oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT", "vermont": "VT",
    "virginia": "VA", "washington": "WA", "west virginia": "WV", "wisconsin": "WI", "wyoming": "WY",
}


def _popular(id_: str, name: str, city: str, state: str, code: str, website: str, type_: str, lat: float, lng: float) -> CollegeRecord:
    return CollegeRecord(
        id=id_,
        name=name,
        city=city,
        state=state,
        state_code=code,
        country=US,
        website=website,
        type=type_,
        coordinates=Coordinates(latitude=lat, longitude=lng),
    )


# Fixed editorial order; do not sort.
POPULAR_COLLEGES: tuple[CollegeRecord, ...] = (
    _popular("harvard", "Harvard University", "Cambridge", "Massachusetts", "MA", "https://www.harvard.edu", "private", 42.3736, -71.1097),
    _popular("mit", "Massachusetts Institute of Technology", "Cambridge", "Massachusetts", "MA", "https://www.mit.edu", "private", 42.3601, -71.0942),
    _popular("stanford", "Stanford University", "Stanford", "California", "CA", "https://www.stanford.edu", "private", 37.4275, -122.1697),
    _popular("uc-berkeley", "University of California, Berkeley", "Berkeley", "California", "CA", "https://www.berkeley.edu", "public", 37.8719, -122.2585),
    _popular("ucla", "University of California, Los Angeles", "Los Angeles", "California", "CA", "https://www.ucla.edu", "public", 34.0689, -118.4452),
    _popular("columbia", "Columbia University", "New York", "New York", "NY", "https://www.columbia.edu", "private", 40.8075, -73.9626),
    _popular("nyu", "New York University", "New York", "New York", "NY", "https://www.nyu.edu", "private", 40.7295, -73.9965),
    _popular("chicago", "University of Chicago", "Chicago", "Illinois", "IL", "https://www.uchicago.edu", "private", 41.7886, -87.5987),
    _popular("northwestern", "Northwestern University", "Evanston", "Illinois", "IL", "https://www.northwestern.edu", "private", 42.0564, -87.6753),
    _popular("bu", "Boston University", "Boston", "Massachusetts", "MA", "https://www.bu.edu", "private", 42.3505, -71.1054),
    _popular("usc", "University of Southern California", "Los Angeles", "California", "CA", "https://www.usc.edu", "private", 34.0224, -118.2851),
    _popular("uw", "University of Washington", "Seattle", "Washington", "WA", "https://www.washington.edu", "public", 47.6553, -122.3035),
    _popular("ut-austin", "University of Texas at Austin", "Austin", "Texas", "TX", "https://www.utexas.edu", "public", 30.2849, -97.7341),
    _popular("umich", "University of Michigan", "Ann Arbor", "Michigan", "MI", "https://www.umich.edu", "public", 42.2780, -83.7382),
    _popular("penn", "University of Pennsylvania", "Philadelphia", "Pennsylvania", "PA", "https://www.upenn.edu", "private", 39.9522, -75.1932),
)


# Offline set used when the directory is unreachable.
FALLBACK_COLLEGES: tuple[CollegeRecord, ...] = tuple(
    CollegeRecord(id=f"fallback-{i}", name=name, city=city, state=state, state_code=code, country=US)
    for i, (name, city, state, code) in enumerate(
        (
            ("Harvard University", "Cambridge", "Massachusetts", "MA"),
            ("MIT", "Cambridge", "Massachusetts", "MA"),
            ("Stanford University", "Stanford", "California", "CA"),
            ("UC Berkeley", "Berkeley", "California", "CA"),
            ("UCLA", "Los Angeles", "California", "CA"),
            ("Columbia University", "New York", "New York", "NY"),
            ("NYU", "New York", "New York", "NY"),
            ("University of Chicago", "Chicago", "Illinois", "IL"),
            ("Northwestern University", "Evanston", "Illinois", "IL"),
            ("Boston University", "Boston", "Massachusetts", "MA"),
        ),
        start=1,
    )
)
