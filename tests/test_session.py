from gapfill.errors import TransportError, UnresolvedProvider
from gapfill.models import FetchResult, FetchStats, Provider, parse_candidate
from gapfill.outreach import DeploymentMode, OutreachConfirmation
from gapfill.session import GapFillSession


def _candidate(client_id, name="Client"):
    return parse_candidate(
        {
            "clientId": client_id,
            "clientName": name,
            "proposedStartIso": "2025-12-10T14:30:00Z",
            "arrivalWindow": {"start": "2025-12-10T14:00:00Z", "end": "2025-12-10T15:00:00Z"},
            "patientIds": [1],
            "patientNames": ["Rex"],
            "holeIndex": 1,
            "myDayPreviewLink": "/appointments/doctor/7840",
        }
    )


def _result(*client_ids, message=None):
    return FetchResult(
        candidates=tuple(_candidate(cid) for cid in client_ids),
        stats=FetchStats(holes_found=2, final_results=len(client_ids)),
        message=message,
    )


class FakeFetcher:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def fetch_candidates(self, provider_id, target_date, ignore_reserve_blocks=False):
        self.calls.append((provider_id, target_date, ignore_reserve_blocks))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeSms:
    def send(self, client_id, message, override_non_prod=False):
        return {}


class FakeResolver:
    def __init__(self, failing=()):
        self.failing = set(failing)

    def resolve(self, candidate, selected_provider_name=""):
        if candidate.client_id in self.failing:
            raise UnresolvedProvider("Could not resolve doctor ID")
        return ("option", candidate.client_id, selected_provider_name)


def make_session(outcomes=(), failing=()):
    fetcher = FakeFetcher(outcomes)
    outreach = OutreachConfirmation(FakeSms(), DeploymentMode.NON_PRODUCTION)
    return GapFillSession(fetcher, outreach, FakeResolver(failing)), fetcher


def test_refresh_loads_ranked_candidates():
    session, fetcher = make_session([_result("1", "2", message="Top 2")])

    assert session.refresh("7840", "2025-12-10", ignore_reserve_blocks=True)

    assert fetcher.calls == [("7840", "2025-12-10", True)]
    assert [c.client_id for c in session.candidates] == ["1", "2"]
    assert session.stats.holes_found == 2
    assert session.message == "Top 2"
    assert not session.loading
    assert session.error is None


def test_stale_result_is_discarded():
    session, _ = make_session()
    session.provider_id, session.target_date = "7840", "2025-12-10"
    first = session.begin_fetch()
    session.target_date = "2025-12-11"
    second = session.begin_fetch()

    assert not session.apply_fetch(first, _result("1"))
    assert session.candidates == ()
    assert session.loading

    assert session.apply_fetch(second, _result("2"))
    assert [c.client_id for c in session.candidates] == ["2"]


def test_stale_failure_does_not_overwrite_state():
    session, _ = make_session()
    first = session.begin_fetch()
    second = session.begin_fetch()

    assert not session.fail_fetch(first, "timeout")
    assert session.error is None
    assert session.apply_fetch(second, _result("1"))


def test_result_after_navigate_away_is_discarded():
    session, _ = make_session()
    ticket = session.begin_fetch()

    session.navigate_away()

    assert not session.apply_fetch(ticket, _result("1"))
    assert session.candidates == ()
    assert not session.loading


def test_validation_failure_keeps_previous_results():
    session, fetcher = make_session([_result("1")])
    session.refresh("7840", "2025-12-10")

    assert not session.refresh("", "2025-12-11")

    assert session.error == "Please select a doctor and date"
    assert [c.client_id for c in session.candidates] == ["1"]
    assert len(fetcher.calls) == 1


def test_transport_failure_sets_error_and_clears_results():
    session, _ = make_session([_result("1"), TransportError("Doctor has no schedule on this date")])
    session.refresh("7840", "2025-12-10")

    assert not session.refresh(target_date="2025-12-11")

    assert session.error == "Doctor has no schedule on this date"
    assert session.candidates == ()
    assert not session.loading


def test_select_provider_uses_external_id():
    session, fetcher = make_session([_result()])
    session.select_provider(Provider(id="31", name="Dr. Ana Park", external_id="7840"))
    session.target_date = "2025-12-10"

    session.refresh()

    assert fetcher.calls == [("7840", "2025-12-10", False)]
    assert session.provider_name == "Dr. Ana Park"


def test_preview_error_is_scoped_to_its_candidate():
    session, _ = make_session([_result("1", "2")], failing={"1"})
    session.provider_name = "Dr. Gray"
    session.refresh("7840", "2025-12-10")
    bad, good = session.candidates

    assert session.open_preview(bad) is None
    assert session.preview_errors == {"1": "Could not resolve doctor ID"}

    assert session.open_preview(good) == ("option", "2", "Dr. Gray")
    assert session.preview_candidate is good
    assert "2" not in session.preview_errors
    assert session.preview_errors["1"] == "Could not resolve doctor ID"

    session.close_preview()
    assert session.preview is None


def test_find_candidate_and_send_status():
    session, _ = make_session([_result("1", "2")])
    session.refresh("7840", "2025-12-10")

    assert session.find_candidate("2").client_id == "2"
    assert session.find_candidate("9") is None
    status = session.send_status("1")
    assert not status.in_flight and status.error is None
