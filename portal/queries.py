"""
Read-side views over the loaded collections.

Stores keep rows in load/insertion order; any sorting or grouping the
screens need is computed here at query time.
"""

from collections import OrderedDict

from portal.models import Gender, HonorRollType, TimelineCategory


def _year_value(value):
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def dashboard_stats(portal):
    return {
        'total_members': len(portal.members),
        'total_organizers': len(portal.organizers),
        'total_affiliates': len(portal.affiliates),
        'total_chancellors': len(portal.honor_roll),
    }


def members_by_batch(members):
    """Member counts per batch year, years in ascending string order."""
    counts = {}
    for m in members:
        counts[m.batch_year] = counts.get(m.batch_year, 0) + 1
    return [{'name': year, 'members': counts[year]} for year in sorted(counts)]


def members_by_gender(members):
    """Fraternity (male) vs sorority (everyone else) headcount."""
    fraternity = sum(1 for m in members if m.gender == Gender.MALE)
    return [
        {'name': 'Fraternity', 'value': fraternity},
        {'name': 'Sorority', 'value': len(members) - fraternity},
    ]


def unique_batches(members):
    """Distinct non-empty batch years, newest first."""
    years = {m.batch_year for m in members if m.batch_year and m.batch_year.strip()}
    numeric = sorted((y for y in years if y.strip().isdigit()), key=int, reverse=True)
    other = sorted((y for y in years if not y.strip().isdigit()), reverse=True)
    return numeric + other


def filter_members(members, gender=None, batch=None, search=''):
    """Members matching the tab, batch dropdown and search box.

    Search matches last name, first name, batch name or batch year,
    case-insensitively. Results are ordered oldest batch first.
    """
    term = (search or '').lower()
    result = []
    for m in members:
        if gender is not None and m.gender != gender:
            continue
        if batch not in (None, 'All') and m.batch_year != batch:
            continue
        haystack = (
            (m.last_name or '').lower(),
            (m.first_name or '').lower(),
            (m.batch_name or '').lower(),
            str(m.batch_year or ''),
        )
        if term and not any(term in field for field in haystack):
            continue
        result.append(m)
    return sorted(result, key=lambda m: _year_value(m.batch_year))


def group_by_batch(members):
    groups = {}
    for m in members:
        groups.setdefault(m.batch_year or 'Unknown', []).append(m)
    return OrderedDict(sorted(groups.items()))


def honor_roll_by_type(entries, roll_type=HonorRollType.GC):
    return [e for e in entries if e.type == roll_type]


def timeline_sorted(events):
    return sorted(events, key=lambda e: _year_value(e.year))


def timeline_by_category(events):
    grouped = OrderedDict((category, []) for category in TimelineCategory)
    for event in timeline_sorted(events):
        grouped[event.category].append(event)
    return grouped
