"""
services/theory_structure.py

서술형(Theory) 시험의 3단계 문항 구조 생성/편집.
  1단계: 대문항 1, 2, 3 …
  2단계: 소문항 a, b, c …
  3단계: 세부문항 i, ii, iii …

Public API:
  - generate_structure(settings, available_question_ids, rng) : 자동 생성
  - add_/remove_ main·sub·nested, set_question_id             : 수동 편집 (새 구조 반환)
  - extract_question_ids(structure)                           : 바인딩된 문제 ID (전위 순회)
  - validate_structure(structure)                             : 규칙 검증

편집 함수는 입력 구조를 변경하지 않고 새 리스트를 반환한다.
"""

import random
from typing import List, Optional, Sequence

from school_cbt.errors import InvalidStructure
from school_cbt.models.exam_model import TheorySettings, TheorySlot
from school_cbt.services.draw import DrawPool

_ROMAN_NUMERALS = ["i", "ii", "iii", "iv", "v", "vi", "vii", "viii", "ix", "x"]

# 고정 모드 / 무작위 모드 개수
_FIXED_SUB_PARTS = 2
_FIXED_NESTED_PARTS = 2
_RANDOM_SUB_PARTS = (1, 3)
_RANDOM_NESTED_PARTS = (1, 4)


def alpha_label(index: int) -> str:
    return chr(ord("a") + index)


def roman_label(index: int) -> str:
    return _ROMAN_NUMERALS[index] if index < len(_ROMAN_NUMERALS) else str(index + 1)


def _copy(structure: Sequence[TheorySlot]) -> List[TheorySlot]:
    return [slot.model_copy(deep=True) for slot in structure]


# ══════════════════════════════════════════════════════════════════════════════
# 자동 생성
# ══════════════════════════════════════════════════════════════════════════════

def generate_structure(
    settings: TheorySettings,
    available_question_ids: Optional[Sequence[str]] = None,
    rng: Optional[random.Random] = None,
) -> List[TheorySlot]:
    """
    설정에 따라 구조를 만들고, 각 칸에 섞인 풀에서 문제를 하나씩 배정한다.

    풀은 비복원으로 소비된다 — 한 번 배정된 문제는 다른 칸에 다시 배정되지 않는다.
    풀이 소진되면 남은 칸은 question_id 없이 자리표시 칸으로 남는다.
    """
    rng = rng or random.Random()
    pool = DrawPool(available_question_ids or [], rng)

    structure: List[TheorySlot] = []
    for i in range(1, settings.total_main_questions + 1):
        main_id = str(i)
        main = TheorySlot(id=main_id, label=main_id, level=1, question_id=pool.pop())

        if settings.include_alphabet:
            num_sub = (
                rng.randint(*_RANDOM_SUB_PARTS)
                if settings.randomize_complexity
                else _FIXED_SUB_PARTS
            )
            for j in range(num_sub):
                sub_label = alpha_label(j)
                sub = TheorySlot(
                    id=f"{main_id}{sub_label}",
                    label=sub_label,
                    level=2,
                    question_id=pool.pop(),
                )

                if settings.include_roman:
                    num_nested = (
                        rng.randint(*_RANDOM_NESTED_PARTS)
                        if settings.randomize_complexity
                        else _FIXED_NESTED_PARTS
                    )
                    for k in range(num_nested):
                        nested_label = roman_label(k)
                        sub.children.append(TheorySlot(
                            id=f"{sub.id}{nested_label}",
                            label=nested_label,
                            level=3,
                            question_id=pool.pop(),
                        ))
                main.children.append(sub)
        structure.append(main)
    return structure


# ══════════════════════════════════════════════════════════════════════════════
# 수동 편집
# ══════════════════════════════════════════════════════════════════════════════

def _relabel(structure: List[TheorySlot]) -> List[TheorySlot]:
    """위치에 맞게 라벨과 경로 ID를 다시 매긴다."""
    for i, main in enumerate(structure):
        main.label = str(i + 1)
        main.id = main.label
        for j, sub in enumerate(main.children):
            sub.label = alpha_label(j)
            sub.id = f"{main.id}{sub.label}"
            for k, nested in enumerate(sub.children):
                nested.label = roman_label(k)
                nested.id = f"{sub.id}{nested.label}"
    return structure


def _main_at(structure: List[TheorySlot], main_index: int) -> TheorySlot:
    if not 0 <= main_index < len(structure):
        raise InvalidStructure(f"대문항 인덱스 범위 초과: {main_index}")
    return structure[main_index]


def _sub_at(structure: List[TheorySlot], main_index: int, sub_index: int) -> TheorySlot:
    main = _main_at(structure, main_index)
    if not 0 <= sub_index < len(main.children):
        raise InvalidStructure(f"소문항 인덱스 범위 초과: {main_index}/{sub_index}")
    return main.children[sub_index]


def add_main_question(structure: Sequence[TheorySlot]) -> List[TheorySlot]:
    result = _copy(structure)
    label = str(len(result) + 1)
    result.append(TheorySlot(id=label, label=label, level=1))
    return result


def remove_main_question(structure: Sequence[TheorySlot], main_index: int) -> List[TheorySlot]:
    result = _copy(structure)
    _main_at(result, main_index)
    del result[main_index]
    return _relabel(result)


def add_sub_part(structure: Sequence[TheorySlot], main_index: int) -> List[TheorySlot]:
    result = _copy(structure)
    main = _main_at(result, main_index)
    label = alpha_label(len(main.children))
    main.children.append(TheorySlot(id=f"{main.id}{label}", label=label, level=2))
    return result


def remove_sub_part(
    structure: Sequence[TheorySlot], main_index: int, sub_index: int
) -> List[TheorySlot]:
    result = _copy(structure)
    _sub_at(result, main_index, sub_index)
    del result[main_index].children[sub_index]
    return _relabel(result)


def add_nested_part(
    structure: Sequence[TheorySlot], main_index: int, sub_index: int
) -> List[TheorySlot]:
    result = _copy(structure)
    sub = _sub_at(result, main_index, sub_index)
    label = roman_label(len(sub.children))
    sub.children.append(TheorySlot(id=f"{sub.id}{label}", label=label, level=3))
    return result


def remove_nested_part(
    structure: Sequence[TheorySlot], main_index: int, sub_index: int, nested_index: int
) -> List[TheorySlot]:
    result = _copy(structure)
    sub = _sub_at(result, main_index, sub_index)
    if not 0 <= nested_index < len(sub.children):
        raise InvalidStructure(
            f"세부문항 인덱스 범위 초과: {main_index}/{sub_index}/{nested_index}"
        )
    del sub.children[nested_index]
    return _relabel(result)


def set_question_id(
    structure: Sequence[TheorySlot],
    question_id: Optional[str],
    main_index: int,
    sub_index: Optional[int] = None,
    nested_index: Optional[int] = None,
) -> List[TheorySlot]:
    """지정한 칸의 문제 ID를 바꾼다. 빈 문자열/None 은 바인딩 해제."""
    result = _copy(structure)
    if sub_index is None:
        slot = _main_at(result, main_index)
    else:
        slot = _sub_at(result, main_index, sub_index)
        if nested_index is not None:
            if not 0 <= nested_index < len(slot.children):
                raise InvalidStructure(
                    f"세부문항 인덱스 범위 초과: {main_index}/{sub_index}/{nested_index}"
                )
            slot = slot.children[nested_index]
    slot.question_id = question_id or None
    return result


# ══════════════════════════════════════════════════════════════════════════════
# 조회 / 검증
# ══════════════════════════════════════════════════════════════════════════════

def extract_question_ids(structure: Sequence[TheorySlot]) -> List[str]:
    ids: List[str] = []
    for slot in structure:
        if slot.question_id:
            ids.append(slot.question_id)
        if slot.children:
            ids.extend(extract_question_ids(slot.children))
    return ids


def count_slots(structure: Sequence[TheorySlot]) -> int:
    return sum(1 + count_slots(slot.children) for slot in structure)


def validate_structure(structure: Sequence[TheorySlot]) -> None:
    """
    구조 규칙 검증. 위반 시 InvalidStructure.

    - 단계: 대문항은 1, 그 자식은 2, 손자는 3. 3단계는 자식을 가질 수 없다.
    - 라벨/ID: 위치에 맞는 라벨(1.., a.., i..)과 부모 ID + 라벨 형태의 ID.
    - 하나의 문제가 두 칸 이상에 배정되지 않는다.
    """
    seen: set = set()

    def _check(slots: Sequence[TheorySlot], level: int, parent_id: str) -> None:
        for index, slot in enumerate(slots):
            if level == 1:
                expected = str(index + 1)
            elif level == 2:
                expected = alpha_label(index)
            else:
                expected = roman_label(index)

            if slot.level != level:
                raise InvalidStructure(f"'{slot.id}': 단계가 {level} 이어야 합니다 ({slot.level}).")
            if slot.label != expected:
                raise InvalidStructure(f"'{slot.id}': 라벨이 '{expected}' 이어야 합니다.")
            if slot.id != f"{parent_id}{expected}":
                raise InvalidStructure(f"'{slot.id}': ID가 '{parent_id}{expected}' 이어야 합니다.")
            if slot.question_id:
                if slot.question_id in seen:
                    raise InvalidStructure(f"문제 '{slot.question_id}'가 여러 칸에 배정되었습니다.")
                seen.add(slot.question_id)
            if level == 3 and slot.children:
                raise InvalidStructure(f"'{slot.id}': 세부문항은 하위 문항을 가질 수 없습니다.")
            _check(slot.children, level + 1, slot.id)

    _check(structure, 1, "")
