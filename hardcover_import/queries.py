"""Fixed GraphQL documents sent to Hardcover.

None of these take variables; filters and limits are baked in.
"""

READ_STATUS_ID = 3
WANT_TO_READ_STATUS_ID = 1
RESULT_LIMIT = 1000

ME = "query Me { me { id username } }"

READ_BOOKS = """
query GetReadBooks {
  user_books(where: { status_id: { _eq: 3 } }, limit: 1000) {
    id
    book {
      id title release_year
      book_mappings { isbn_13 isbn_10 }
    }
    rating
    user_book_reads(order_by: { finished_at: desc }, limit: 1) {
      finished_at started_at
    }
  }
}
"""

RATED_BOOKS = """
query GetRatings {
  user_books(where: { rating: { _is_null: false } }, limit: 1000) {
    id
    book {
      id title release_year
      book_mappings { isbn_13 isbn_10 }
    }
    rating
    inserted_at
  }
}
"""

WANT_TO_READ = """
query GetWantToRead {
  user_books(where: { status_id: { _eq: 1 } }, limit: 1000) {
    id
    book {
      id title release_year
      book_mappings { isbn_13 isbn_10 }
    }
    inserted_at
  }
}
"""
