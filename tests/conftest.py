"""Shared fixtures for jmarelay tests."""

import pytest

REPORT_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<Report xmlns="http://xml.kishou.go.jp/jmaxml1/" xmlns:jmx="http://xml.kishou.go.jp/jmaxml1/">
  <Control>
    <Title>{title}</Title>
    <DateTime>2024-01-01T07:18:00Z</DateTime>
    <Status>{status}</Status>
    <EditorialOffice>気象庁本庁</EditorialOffice>
    <PublishingOffice>気象庁</PublishingOffice>
  </Control>
  <Head xmlns="http://xml.kishou.go.jp/jmaxml1/informationBasis1/">
    <Title>{title}</Title>
    <ReportDateTime>2024-01-01T16:18:00+09:00</ReportDateTime>
    <TargetDateTime>2024-01-01T16:10:00+09:00</TargetDateTime>
    <EventID>{event_id}</EventID>
    <InfoType>発表</InfoType>
    <Serial>1</Serial>
    <InfoKind>地震情報</InfoKind>
    <InfoKindVersion>1.0_1</InfoKindVersion>
    <Headline>
      <Text>１日１６時１０分ころ、地震がありました。</Text>
    </Headline>
  </Head>
  <Body xmlns="http://xml.kishou.go.jp/jmaxml1/body/seismology1/"
        xmlns:jmx_eb="http://xml.kishou.go.jp/jmaxml1/elementBasis1/">
    <Earthquake>
      <OriginTime>2024-01-01T16:10:00+09:00</OriginTime>
      <Hypocenter>
        <Area>
          <Name>石川県能登地方</Name>
          <jmx_eb:Coordinate description="北緯３７．５度　東経１３７．２度　深さ１０ｋｍ">+37.5+137.2-10000/</jmx_eb:Coordinate>
        </Area>
      </Hypocenter>
      <jmx_eb:Magnitude type="Mj" description="Ｍ７．６">7.6</jmx_eb:Magnitude>
    </Earthquake>
  </Body>
</Report>
"""


def make_report(
    *,
    title: str = "震源・震度に関する情報",
    status: str = "通常",
    event_id: str = "20240101161022",
) -> bytes:
    """Build a minimal JMA seismology bulletin."""
    return REPORT_TEMPLATE.format(title=title, status=status, event_id=event_id).encode("utf-8")


class FakeClock:
    """Simulated monotonic clock whose sleeps advance time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def fake_clock():
    return FakeClock()


@pytest.fixture()
def report_xml():
    return make_report()


@pytest.fixture()
def report_factory():
    return make_report


@pytest.fixture()
def retry_options(fake_clock):
    """Retry options that run without real delays and with fixed jitter."""
    return {"clock": fake_clock, "sleep": fake_clock.sleep, "jitter": lambda: 1.0}
