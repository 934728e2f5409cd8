"""
services/draw.py

무작위 섞기 + 비복원 추출.
세션 문제 선택과 서술형 구조 생성이 같은 기본 연산을 공유한다.
"""

import random
from typing import Generic, List, Optional, Sequence, TypeVar

T = TypeVar("T")


def shuffled(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """
    Fisher–Yates 셔플. 입력은 건드리지 않고 새 리스트를 반환한다.
    마지막 인덱스부터 1까지, i 이하의 균등 난수 인덱스 j 와 교환.
    """
    rng = rng or random
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def draw(
    items: Sequence[T],
    count: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> List[T]:
    """
    섞은 뒤 앞에서 count 개를 꺼낸다.
    count 가 없거나 0 이하이거나 전체 개수 이상이면 전체 순열을 반환.
    """
    result = shuffled(items, rng)
    if count and 0 < count < len(result):
        return result[:count]
    return result


class DrawPool(Generic[T]):
    """섞인 풀에서 하나씩 꺼내 쓰는 비복원 추출기. 소진되면 None."""

    def __init__(self, items: Sequence[T], rng: Optional[random.Random] = None):
        self._items = shuffled(items, rng)

    def pop(self) -> Optional[T]:
        if not self._items:
            return None
        return self._items.pop()

    def __len__(self) -> int:
        return len(self._items)


def select_session_questions(
    pool: Sequence[str],
    display_count: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """
    시험 풀에서 세션 전용 문제 순서를 만든다. 세션 생성 시 한 번만 호출된다.

    Args:
        pool:          시험의 문제 ID 풀
        display_count: 응시자별 표시 문항 수 (0 < display_count < len(pool) 일 때만 자름)

    Returns:
        무작위 순서의 문제 ID 리스트. 풀이 비어 있으면 빈 리스트.
    """
    return draw(pool, display_count, rng)
