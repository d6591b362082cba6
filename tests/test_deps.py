from substitute_planner.api.deps import get_planner_service
from substitute_planner.services.planner_service import PlannerService


def test_get_planner_service_defaults_to_memory() -> None:
    service = get_planner_service()
    assert isinstance(service, PlannerService)
    assert get_planner_service() is service
