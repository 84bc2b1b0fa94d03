from octagram.tasks.retention import purge_expired_runs

# 对外导出任务函数
__all__ = ["purge_expired_runs"]
