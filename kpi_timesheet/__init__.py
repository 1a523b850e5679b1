"""
Расчет KPI персонала по табелю учета рабочего времени
"""
