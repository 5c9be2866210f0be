from tests.fakes.fake_gateway import FakeGateway, Gate

__all__ = ["FakeGateway", "Gate"]
