"""
Prep/main expansion for special activities that need setup time.

An activity with a configured setup duration becomes two queue items: a
"<name> (Prep)" item lasting the setup time, then the main item. Both keep
the original template window so they sort together, and each gets its own
flex window.
"""
import logging
from typing import Callable, List

from campday.services.timeline import TimeBlock, flex_window

logger = logging.getLogger(__name__)

PREP_SUFFIX = " (Prep)"


def prep_name_for(activity_name: str) -> str:
    return f"{activity_name}{PREP_SUFFIX}"


def expand_prep_blocks(
    activity_queue: List[TimeBlock],
    get_setup_duration: Callable[[str], int],
) -> List[TimeBlock]:
    expanded: List[TimeBlock] = []
    for item in activity_queue:
        setup = get_setup_duration(item.event_name) or 0
        if setup <= 0 or item.is_prep_block or item.is_main_block:
            expanded.append(item)
            continue

        ideal = item.ideal_duration
        prep = item.copy(
            event_name=prep_name_for(item.event_name),
            flex=flex_window(setup),
            is_prep_block=True,
            is_main_block=False,
            has_prep=False,
            main_activity_name=item.event_name,
            pair_origin=item.start_minute,
        )
        main = item.copy(
            flex=flex_window(ideal),
            is_prep_block=False,
            is_main_block=True,
            has_prep=True,
            main_activity_name=item.event_name,
            pair_origin=item.start_minute,
        )
        expanded.extend([prep, main])
        logger.debug("[%s] %s needs %d min setup; queued prep + main", item.division, item.event_name, setup)
    return expanded
