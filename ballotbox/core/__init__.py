"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- 狀態機：集中管理所有 WorkflowStatus 轉換
- Manager / Registry / Book：管理選舉、選民、提案的生命週期
- Events：提交後同步通知 observer
- Locks：並發控制工具
"""
