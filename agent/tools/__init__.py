"""
Agent tools.

The assistant invokes tools by embedding [USE_TOOL: name] {json} [END_TOOL]
in its reply. Four booking tools are registered:
1. list_room_types - active room types with price and capacity
2. check_availability - room types with a free room for a date range
3. calculate_price - price breakdown for a stay
4. create_reservation - creates the reservation (guest + room assignment)
"""

from agent.tools.booking_tools import BookingTools, create_booking_registry
from agent.tools.protocol import ToolCallProtocol, ToolResolution
from agent.tools.registry import Tool, ToolOutput, ToolRegistry

__all__ = [
    "BookingTools",
    "Tool",
    "ToolCallProtocol",
    "ToolOutput",
    "ToolRegistry",
    "ToolResolution",
    "create_booking_registry",
]
