"""
計票服務：找出所有並列最高票的提案（支援平手）

純計算邏輯，不涉及狀態轉換
"""
from typing import Iterable, List, Tuple


def compute_winning_ids(vote_counts: Iterable[Tuple[int, int]]) -> List[int]:
    """
    計算勝出提案（draw-aware）

    規則：
    - maxCount = 所有提案中最高的票數
    - 所有票數等於 maxCount 的提案都是勝出者（平手全部列出，不做 tie-break）
    - 依 proposal_id 升冪排序

    參數：
        vote_counts: (proposal_id, vote_count) 的序列

    返回：
        勝出提案的 proposal_id 列表；沒有任何提案時返回空列表

    範例：
        compute_winning_ids([(0, 0), (1, 2)]) -> [1]
        compute_winning_ids([(0, 1), (1, 1)]) -> [0, 1]
        compute_winning_ids([]) -> []
    """
    counts = sorted(vote_counts)
    if not counts:
        return []

    max_count = max(count for _, count in counts)
    return [proposal_id for proposal_id, count in counts if count == max_count]


def total_votes(vote_counts: Iterable[Tuple[int, int]]) -> int:
    """所有提案的票數總和"""
    return sum(count for _, count in vote_counts)
