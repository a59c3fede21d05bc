"""Identities and a controllable clock shared by the test modules."""

ADMIN = "0xAdmin"
PROVIDER = "0xProviderA"
OTHER_PROVIDER = "0xProviderB"
PATIENT = "0xPatient"
OTHER_PATIENT = "0xPatientTwo"
OUTSIDER = "0xOutsider"

START_TIME = 1_700_000_000


class FakeClock:
    def __init__(self, now: int = START_TIME):
        self.now = now

    def __call__(self) -> int:
        return self.now
