"""
GraphQL 쿼리 정의

Uniswap V3 subgraph에서 수수료 계산용 풀 상태를 조회하기 위한 쿼리들.
"""

# Pool 전역 상태 쿼리 (Global State)
POOL_STATE_QUERY = """
query PoolState($id: ID!) {
  pool(id: $id) {
    id
    tick
    sqrtPrice
    feeGrowthGlobal0X128
    feeGrowthGlobal1X128
  }
  _meta {
    block {
      number
    }
  }
}
"""

# 특정 틱들의 정보 쿼리 (Tick-Indexed State)
# feeGrowthOutside 필드 포함 - 백서 Section 6.3 수수료 계산에 필수
TICKS_BY_IDX_QUERY = """
query Ticks($pool: ID!, $tickIdxs: [BigInt!]!) {
  ticks(where: { pool: $pool, tickIdx_in: $tickIdxs }) {
    tickIdx
    feeGrowthOutside0X128
    feeGrowthOutside1X128
  }
}
"""
