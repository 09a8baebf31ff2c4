from __future__ import annotations

CSV_PARSER_SYSTEM_PROMPT = "You are an expert data extraction assistant."

CSV_PARSER_PROMPT = """
You are an expert data extraction assistant specializing in carbon footprint lifecycle analysis.
Your task is to meticulously parse the following CSV data. Each row likely represents a material, component, or process step in a product's lifecycle.

Follow these instructions precisely:

1.  **提取标签:** 为每行提取清晰简洁的名称或标识符。这必须放在每个'data'对象内的'label'字段中。'label'字段不能为空。

2.  **提取所有基础数据:** 对每行，始终填充以下基础字段:
    * label: 描述性标签(必填)
    * nodeId: 节点名称(必填)
    * lifecycleStage: 生命周期阶段(必填) // 请从以下选项中选择一个：原材料获取阶段、生产制造阶段、分销运输阶段、使用阶段、寿命终止阶段
    * emissionType: 排放类型(必填) // 请从以下选项中选择一个：原材料运输、原材料获取、生产制造、分销运输、产品使用、废弃物处理
    * quantity: 数量(必填) // 数量后面不要加单位
    * activityUnit: 数量单位(必填) // 例如 kg, 本, 吨, m³, 加仑, kWh, 箱
    * activitydataSource: 活动数据来源(有则填，无则设为空字符串)
    * activityScore: 活动评分(有则填，无则设为空字符串)
    * activityScorelevel: 活动评分等级(有则填，无则设为空字符串)

3.  **根据生命周期阶段提取专属数据:**
    * 原材料获取阶段: material, weight_per_unit, weight, supplier, isRecycled, recycledContent, recycledContentPercentage, sourcingRegion
    * 生产制造阶段: energyConsumption, energyType, productionMethod, waterConsumption, processEfficiency, wasteGeneration
    * 分销运输阶段: transportationMode, transportationDistance, startPoint, endPoint, packagingMaterial, vehicleType, fuelType
    * 使用阶段: lifespan, energyConsumptionPerUse, waterConsumptionPerUse, usageFrequency, maintenanceFrequency
    * 寿命终止阶段: recyclingRate, landfillPercentage, disposalMethod, endOfLifeTreatment, hazardousWasteContent
    数值字段无则设为0，文本字段无则设为空字符串，布尔字段无则设为false。

4.  **处理缺失数据:** 如果某行缺少关键字段，提取其他可用信息，但不要编造数据。

5.  **数量跟重量的填写：** 当这个表的数量跟重量是同一个字段时，请将数量设定为重量, 并且给出单位

6.  **输出格式:** 您的*整个*输出必须是单个有效的JSON数组。数组中的每个对象必须具有以下结构：
    {{
      "data": {{
        "label": "必需的标签",
        "nodeId": "必需的标签(同label)",
        "lifecycleStage": "生命周期阶段",
        "emissionType": "排放类型",
        "quantity": "数量",
        "activityUnit": "数量单位",
        "其他所有必要字段": "对应值"
      }}
    }}

7.  **严格JSON数组:** 不要在JSON数组之前或之后包含*任何*文本。只有JSON数组本身。

CSV Data:
```
{csv_content}
```
"""

SEARCH_OPTIMIZER_SYSTEM_PROMPT = "你是专业的碳足迹数据专家，擅长为国际碳排放数据库生成标准化的英文搜索词。"

SEARCH_OPTIMIZER_PROMPT = """
你是碳足迹数据专家，专门负责为碳排放因子数据库查询生成最优的英文搜索词。

请为以下节点信息生成最优的英文搜索词，用于查询ecoinvent、IPCC、DEFRA等国际碳因子数据库：

节点信息：
- 标签: {node_label}
- 节点类型: {node_type}
- 生命周期阶段: {lifecycle_stage}
- 排放类型: {emission_type}
- 上下文数据: {context_data}

要求：
1. 搜索词必须是英文，符合国际碳排放数据库的标准命名规范
2. 优先使用ecoinvent数据库中的标准活动名称格式
3. 考虑节点的生命周期阶段和具体活动类型
4. 确保搜索词能够匹配到相关的碳排放因子
5. 提供2-3个备选搜索词以提高匹配成功率

输出严格的JSON格式：
{{
  "optimizedQuery": "主要优化搜索词（英文）",
  "confidence": 0.85,
  "reasoning": "优化原因和策略说明",
  "alternativeQueries": ["备选搜索词1", "备选搜索词2"],
  "suggestedDatabase": "建议的数据库名称"
}}

注意事项：
- 不要输出markdown格式或其他说明文字
- confidence应为0-1之间的数值
- 考虑地理区域和技术特征（如适用）
"""

RERANKER_SYSTEM_PROMPT = "你是专业的碳足迹数据分析专家，擅长评估和排序碳排放因子的相关性和质量。"

RERANKER_CANDIDATE_TEMPLATE = """
候选 {position}:
- 活动名称: {activity_name}
- 碳因子: {factor} kg CO2eq/{unit}
- 地理位置: {geography}
- 数据源: {data_source}
- 活动UUID: {activity_uuid}
- 导入日期: {import_date}
- 原始评分: {original_score}"""

RERANKER_PROMPT = """
你是专业的碳足迹数据分析专家，请为以下节点的碳因子候选结果进行智能重排序。

节点信息：
- 标签: {node_label}
- 节点类型: {node_type}
- 生命周期阶段: {lifecycle_stage}
- 排放类型: {emission_type}
- 上下文数据: {context_data}

候选碳因子结果：
{candidates}

评估标准（按重要性排序）：
1. 活动名称与节点标签的语义相关性 (40%)
2. 生命周期阶段的匹配度 (25%)
3. 地理位置的适用性 (15%)
4. 数据源的权威性和可靠性 (10%)
5. 碳因子数值的合理性 (5%)
6. 数据时效性 (5%)

请返回严格的JSON格式：
{{
  "rankings": [
    {{"index": 1, "score": 0.95, "reasoning": "具体的评分原因说明", "confidence": 0.9}}
  ],
  "bestMatch": {{
    "factor": 0,
    "activityName": "",
    "unit": "",
    "aiScore": 0.95,
    "aiReasoning": "选择此候选的综合原因"
  }},
  "summary": {{
    "totalCandidates": {total},
    "averageConfidence": 0.85,
    "recommendationStrength": "strong"
  }}
}}

注意事项：
- index 是候选的编号（从1开始），按从高到低的score顺序排列所有候选
- score和confidence都应为0-1之间的数值
- recommendationStrength应为 "strong", "moderate", 或 "weak"
- 不要输出markdown格式或其他说明文字
"""

EVIDENCE_VALIDATOR_PROMPT = """
你是一位专业的碳排放数据审核专家。请分析以下图片，并验证其是否能够作为以下排放源数据的有效证据：

排放源名称: {source_name}
活动数据值: {activity_value}
活动数据单位: {activity_unit}

请检查以下几点:
1. 图片中是否能清晰看到与排放源相关的信息？
2. 图片中显示的数值是否与提供的活动数据值匹配或接近？
3. 图片中显示的单位是否与提供的活动数据单位匹配？
4. 图片是否看起来是真实的文件（如账单、发票、计量表读数等）？
5. 图片中的日期信息是否合理（如果有日期）？

请以JSON格式返回你的分析结果，格式如下：
{{
  "isValid": true或false,
  "confidence": 0-100之间的数字，表示你对结论的置信度,
  "matchingPoints": [列出匹配的关键点],
  "discrepancies": [列出不匹配的关键点],
  "suggestion": "对用户的建议",
  "finalReason": "最终结论的简要解释"
}}

只返回JSON格式，不要包含其他解释或markdown格式。
"""

TRANSPORT_AUTOFILL_SYSTEM_PROMPT = "你是碳足迹运输数据补全专家。"

TRANSPORT_AUTOFILL_PROMPT = """
你是碳足迹运输数据补全专家。请根据输入的每个节点（包含 nodeId、起点、终点、名称），推测合理的运输方式、距离（km）、距离单位，并补全相关字段。
输出严格的 JSON 数组，每个元素结构如下：
{{
  "nodeId": "xxx",
  "transportType": "卡车",
  "distance": 123.4,
  "distanceUnit": "km",
  "emissionFactor": 0.12,
  "notes": "推理说明"
}}
注意事项：
1. distance 必须为数字，distanceUnit 必须为"km"。
2. 不要编造 emissionFactor，若无数据可不填。
3. 输出必须是严格的 JSON 数组，不要有任何多余文本或 markdown。

输入节点：
{nodes}
"""
