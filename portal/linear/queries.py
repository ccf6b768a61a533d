"""
Linear GraphQL documents.

Field selections are kept to what the engine reads: board cards carry no
comments or attachments, and nested children go three levels deep so
descendant counts can be computed without extra round trips.
"""

STATE_FIELDS = """
    id
    name
    type
    color
    position
"""

ISSUE_CARD_FIELDS = """
    id
    identifier
    title
    priority
    url
    createdAt
    updatedAt
    assignee {
      id
      name
    }
    labels {
      nodes {
        id
        name
        color
      }
    }
"""

# Three levels of children; deeper descendants are not reported by the query.
CHILDREN_TREE = """
    children(first: 50) {
      nodes {
        id
        identifier
        title
        state { id name type }
        children(first: 50) {
          nodes {
            id
            identifier
            title
            state { id name type }
            children(first: 50) {
              nodes {
                id
                identifier
                title
                state { id name type }
              }
            }
          }
        }
      }
    }
"""

# Team workflow configuration
GET_TEAM_CONFIG_QUERY = f"""
query GetTeamConfig($teamId: String!) {{
  team(id: $teamId) {{
    id
    name
    key
    states {{
      nodes {{
        {STATE_FIELDS}
      }}
    }}
  }}
}}
"""

# One Kanban column, paginated
GET_ISSUES_IN_STATE_QUERY = f"""
query GetIssuesInState($teamId: ID!, $stateId: ID!, $first: Int!, $after: String) {{
  issues(
    filter: {{ team: {{ id: {{ eq: $teamId }} }}, state: {{ id: {{ eq: $stateId }} }} }}
    first: $first
    after: $after
  ) {{
    pageInfo {{
      hasNextPage
      endCursor
    }}
    nodes {{
      {ISSUE_CARD_FIELDS}
      state {{
        {STATE_FIELDS}
      }}
      parent {{
        id
        identifier
        title
      }}
      {CHILDREN_TREE}
    }}
  }}
}}
"""

# Full issue for the detail view
GET_ISSUE_DETAIL_QUERY = f"""
query GetIssueDetail($issueId: String!) {{
  issue(id: $issueId) {{
    {ISSUE_CARD_FIELDS}
    description
    estimate
    dueDate
    completedAt
    priorityLabel
    state {{
      {STATE_FIELDS}
    }}
    team {{
      id
      name
      key
    }}
    parent {{
      id
      identifier
      title
    }}
    comments(first: 100) {{
      nodes {{
        id
        body
        createdAt
        user {{
          id
          name
        }}
      }}
    }}
    attachments {{
      nodes {{
        id
        title
        url
      }}
    }}
    {CHILDREN_TREE}
  }}
}}
"""

# Issue ids for a team, used to invalidate detail entries
GET_TEAM_ISSUE_IDS_QUERY = """
query GetTeamIssueIds($teamId: ID!, $first: Int!, $after: String) {
  issues(filter: { team: { id: { eq: $teamId } } }, first: $first, after: $after) {
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      id
    }
  }
}
"""

GET_TEAMS_QUERY = """
query GetTeams($first: Int!, $after: String) {
  teams(first: $first, after: $after) {
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      id
      name
      key
      description
    }
  }
}
"""

# =============================================================================
# Mutations
# =============================================================================

UPDATE_ISSUE_STATE_MUTATION = """
mutation UpdateIssueState($issueId: String!, $stateId: String!) {
  issueUpdate(id: $issueId, input: { stateId: $stateId }) {
    success
    issue {
      id
      identifier
      state { id name type }
    }
  }
}
"""

ADD_COMMENT_MUTATION = """
mutation AddComment($issueId: String!, $body: String!) {
  commentCreate(input: { issueId: $issueId, body: $body }) {
    success
    comment {
      id
      body
      createdAt
      user { id name }
    }
  }
}
"""

ADD_LABEL_MUTATION = """
mutation AddLabel($issueId: String!, $labelId: String!) {
  issueAddLabel(id: $issueId, labelId: $labelId) {
    success
    issue {
      id
      labels { nodes { id name } }
    }
  }
}
"""

UPDATE_ASSIGNEE_MUTATION = """
mutation UpdateIssueAssignee($issueId: String!, $assigneeId: String!) {
  issueUpdate(id: $issueId, input: { assigneeId: $assigneeId }) {
    success
    issue {
      id
      assignee { id name email }
    }
  }
}
"""

UPDATE_PRIORITY_MUTATION = """
mutation UpdateIssuePriority($issueId: String!, $priority: Int!) {
  issueUpdate(id: $issueId, input: { priority: $priority }) {
    success
    issue {
      id
      priority
      priorityLabel
    }
  }
}
"""

CREATE_ATTACHMENT_MUTATION = """
mutation CreateAttachment($issueId: String!, $url: String!, $title: String!) {
  attachmentCreate(input: { issueId: $issueId, url: $url, title: $title }) {
    success
    attachment {
      id
      title
      url
    }
  }
}
"""
