"""
服務層

這個 package 包含純計算與判斷邏輯，不負責狀態轉換：
- PhaseService：WorkflowStatus 推進規則與每個操作允許的階段
- AccessService：owner / 已登記選民的權限判斷
- TallyService：draw-aware 的勝出提案計算
- HistoryService：選舉事件紀錄查詢
"""
