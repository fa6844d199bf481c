"""Pytest configuration and fixtures."""

import pytest

from moderngov_mcp.matching.matcher import CouncilMatcher
from moderngov_mcp.models.schemas import CouncilRecord


@pytest.fixture
def sample_councils():
    """Provide a small council reference list."""
    return [
        CouncilRecord(
            name="Lichfield District Council",
            service_url="https://democracy.lichfielddc.gov.uk/mgWebService.asmx",
            region="West Midlands",
            type="District",
        ),
        CouncilRecord(
            name="Leeds City Council",
            service_url="https://democracy.leeds.gov.uk/mgWebService.asmx",
            region="Yorkshire and Humber",
            type="Metropolitan",
        ),
        CouncilRecord(
            name="Manchester City Council",
            service_url="https://democracy.manchester.gov.uk/mgWebService.asmx",
            region="North West",
            type="Metropolitan",
        ),
        CouncilRecord(
            name="Camden Council",
            service_url="https://democracy.camden.gov.uk/mgWebService.asmx",
            region="London",
            type="London Borough",
        ),
        CouncilRecord(
            name="Cardiff Council",
            service_url="https://cardiff.moderngov.co.uk/mgWebService.asmx",
            region="Wales",
            type="Unitary",
        ),
    ]


@pytest.fixture
def matcher(sample_councils):
    """Provide a matcher over the sample councils."""
    return CouncilMatcher(sample_councils)
